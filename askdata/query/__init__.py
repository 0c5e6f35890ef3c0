from .aggregate import aggregate
from .executor import QueryExecutor
from .safety import assert_safe, enforce_limit, finalize_sql

__all__ = [
    "aggregate",
    "QueryExecutor",
    "assert_safe",
    "enforce_limit",
    "finalize_sql",
]
