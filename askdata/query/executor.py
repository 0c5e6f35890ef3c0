import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from askdata.errors import ExecutionFailure, UnanswerableQuery
from askdata.nl.types import BuilderIntent, ErrorIntent, SqlIntent
from askdata.query.builder import build_query
from askdata.query.safety import finalize_sql
from askdata.settings import ROW_CAP

log = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]


class QueryExecutor:
    """
    Runs one intent against the relational store, at most once.

    Builder intents go through the query builder; SQL intents pass the
    safety gate and run as a single text statement; error intents never
    touch the database.
    """

    def __init__(self, db: Session, row_cap: int = ROW_CAP):
        self.db = db
        self.row_cap = row_cap
        self.executed_sql: Optional[str] = None

    def execute(self, intent) -> Rows:
        if isinstance(intent, ErrorIntent):
            raise UnanswerableQuery(intent.explanation)
        if isinstance(intent, SqlIntent):
            return self._run_sql(intent)
        if isinstance(intent, BuilderIntent):
            return self._run_builder(intent)
        raise TypeError(f"not an intent: {type(intent).__name__}")

    def _run_builder(self, intent: BuilderIntent) -> Rows:
        stmt, projection = build_query(intent, self.row_cap)
        log.info("builder query on %s with %d filter(s)", intent.table, len(intent.filters))
        return [projection.assemble(r) for r in self._fetch(stmt)]

    def _run_sql(self, intent: SqlIntent) -> Rows:
        sql = finalize_sql(intent.sql, self.row_cap)
        self.executed_sql = sql
        log.info("sql query: %s", sql.replace("\n", " "))
        return [dict(m) for m in self._fetch(text(sql))]

    def _fetch(self, stmt):
        try:
            return self.db.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            self.db.rollback()
            log.exception("query execution failed")
            reason = getattr(e, "orig", None) or e
            raise ExecutionFailure(f"Database error: {reason}") from e
