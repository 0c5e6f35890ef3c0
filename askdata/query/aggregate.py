from typing import Any, Dict, List

UNKNOWN = "Unknown"
AGENT_COLUMN = "agent_id"


def _key(row: Dict[str, Any], group_by: str) -> str:
    # "by agent" should read as names, not opaque IDs
    agent = row.get("agents") if group_by == AGENT_COLUMN else None
    if isinstance(agent, dict):
        name = " ".join(str(p) for p in (agent.get("first_name"), agent.get("last_name")) if p)
        if name:
            return name
    value = row.get(group_by)
    if value is None or value == "":
        return UNKNOWN
    return str(value)


def aggregate(rows: List[Dict[str, Any]], group_by: str) -> List[Dict[str, Any]]:
    """
    Count rows per value of `group_by`, most frequent first.
    Ties keep the order in which keys were first seen.
    """
    counts: Dict[str, int] = {}
    for row in rows:
        k = _key(row, group_by)
        counts[k] = counts.get(k, 0) + 1
    return [
        {"name": name, "value": value}
        for name, value in sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    ]
