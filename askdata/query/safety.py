# askdata/query/safety.py
"""
Read-only gate for model-written SQL.

This is a textual heuristic over the raw statement, not a parser: it stops
the mistakes a model makes (stacked write statements, missing LIMIT), not a
determined attacker. Builder-mode intents never pass through here since the
query builder cannot express writes.
"""
import logging
import re

from askdata.errors import PolicyViolation
from askdata.settings import ROW_CAP

log = logging.getLogger(__name__)

DEFAULT_LIMIT = ROW_CAP

_WRITE_KEYWORDS = ("insert", "update", "delete", "create", "alter", "drop")

# leading comments are allowed before SELECT / WITH
_READ_ONLY_START = re.compile(r"^\s*(?:(?:--[^\n]*(?:\n|$)|/\*.*?\*/)\s*)*(?:select|with)\b", re.I | re.S)
_STACKED_WRITE = re.compile(r";\s*(" + "|".join(_WRITE_KEYWORDS) + r")\b", re.I)
# data-modifying CTE: WITH x AS (DELETE ...)
_CTE_WRITE = re.compile(r"\bas\s*\(\s*(insert|update|delete)\b", re.I)
_HAS_LIMIT = re.compile(r"\blimit\s+\d+\b", re.I)
# semicolons, whitespace and comments after the last clause
_TRAILER = re.compile(r"""(?:\s+|;|--[^\n'"]*|/\*.*?\*/)+\Z""", re.S)


def assert_safe(sql: str) -> None:
    """Raise PolicyViolation unless `sql` looks like a single read-only query."""
    if not sql or not sql.strip():
        raise PolicyViolation("Generated SQL is empty")
    if not _READ_ONLY_START.match(sql):
        raise PolicyViolation("Only SELECT queries are allowed")
    m = _STACKED_WRITE.search(sql) or _CTE_WRITE.search(sql)
    if m:
        log.warning("rejected SQL containing %s", m.group(1).upper())
        raise PolicyViolation(f"Generated SQL contains a disallowed {m.group(1).upper()} statement")


def enforce_limit(sql: str, limit: int = DEFAULT_LIMIT) -> str:
    """Append a LIMIT clause if none exists. Trailing semicolons and comments are dropped."""
    body = _TRAILER.sub("", sql.strip())
    if _HAS_LIMIT.search(body):
        return body
    return f"{body}\nLIMIT {limit}"


def finalize_sql(sql: str, limit: int = DEFAULT_LIMIT) -> str:
    """Gate + row cap: the exact text that will be executed."""
    assert_safe(sql)
    return enforce_limit(sql, limit)
