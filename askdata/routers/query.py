import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from askdata.db import get_db
from askdata.errors import QueryError, UnsupportedOperator
from askdata.nl.translator import IntentTranslator
from askdata.query import envelope
from askdata.query.service import answer

log = logging.getLogger(__name__)

# --------------------------------------------------------------------
# Router setup
# --------------------------------------------------------------------
router = APIRouter(prefix="", tags=["query"])


# Request schema: question + optional parameter preamble
class QueryRequest(BaseModel):
    query: str = ""                   # natural-language question
    parameters: Optional[str] = None  # e.g. "<PROPERTY_ID>=PROP-25-00111"


def get_translator(request: Request) -> IntentTranslator:
    """The translator built at startup (see main.lifespan)."""
    return request.app.state.translator


@router.post("/query")
def query(
    req: QueryRequest,
    db: Session = Depends(get_db),
    translator: IntentTranslator = Depends(get_translator),
) -> Dict[str, Any]:
    """
    Answer a natural-language question about agents and inquiries.

    Request body:
      {"query": "How many won deals by source?", "parameters": null}

    Response JSON (success):
      {"success": true, "data": [...], "rawData": [...], "intent": {...}, "count": 12, "debug": {...}}

    Response JSON (failure, HTTP 400/500):
      {"success": false, "error": "...", "debug": {"errorType": "..."}}
    """
    question = (req.query or "").strip()
    if not question:
        return JSONResponse(
            envelope.failure("Missing 'query'", {"errorType": "ValidationError"}), status_code=400
        )

    try:
        return answer(question, translator, db, parameters=req.parameters)
    except QueryError as e:
        log.warning("query failed (%s): %s", type(e).__name__, e.message)
        debug = {"errorType": type(e).__name__}
        if isinstance(e, UnsupportedOperator):
            debug["operator"] = e.operator
        return JSONResponse(envelope.failure(e.message, debug), status_code=e.status_code)
    except Exception as e:
        log.exception("unexpected error answering %r", question)
        return JSONResponse(
            envelope.failure(str(e) or type(e).__name__, {"errorType": type(e).__name__}),
            status_code=500,
        )
