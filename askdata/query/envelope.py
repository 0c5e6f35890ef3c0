from typing import Any, Dict, List, Optional

from askdata.nl.types import dump_intent


def success(intent, data: List[Dict[str, Any]], raw: List[Dict[str, Any]],
            debug: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    `data` is what the chart/table shows (possibly grouped); `rawData` is
    always the ungrouped rows so the UI can drill down or regroup.
    """
    out = {
        "success": True,
        "data": data,
        "rawData": raw,
        "intent": dump_intent(intent),
        "count": len(raw),
    }
    if debug is not None:
        out["debug"] = debug
    return out


def failure(error: str, debug: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"success": False, "error": error}
    if debug is not None:
        out["debug"] = debug
    return out
