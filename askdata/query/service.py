import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from askdata.nl.translator import IntentTranslator
from askdata.nl.types import BuilderIntent, dump_intent
from askdata.query import envelope
from askdata.query.aggregate import aggregate
from askdata.query.executor import QueryExecutor
from askdata.settings import ROW_CAP

log = logging.getLogger(__name__)


def answer(question: str, translator: IntentTranslator, db: Session,
           parameters: Optional[str] = None, row_cap: int = ROW_CAP) -> Dict[str, Any]:
    """
    One request: question -> intent -> rows -> (grouped) view -> envelope.
    QueryError subclasses propagate to the caller untouched.
    """
    intent = translator.translate(question, parameters)
    log.info("intent: %s", dump_intent(intent))

    executor = QueryExecutor(db, row_cap=row_cap)
    rows = executor.execute(intent)
    log.info("query returned %d row(s)", len(rows))

    data = rows
    if isinstance(intent, BuilderIntent) and intent.group_by and rows:
        data = aggregate(rows, intent.group_by)
        if intent.visualization is None:
            intent = intent.model_copy(update={"visualization": "bar"})
    if intent.visualization is None:
        intent = intent.model_copy(update={"visualization": "table"})

    debug: Dict[str, Any] = {}
    if isinstance(intent, BuilderIntent):
        debug["appliedFilters"] = [f.model_dump(mode="json") for f in intent.filters]
    if executor.executed_sql:
        debug["sql"] = executor.executed_sql
    return envelope.success(intent, data, rows, debug=debug)
