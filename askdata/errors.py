# askdata/errors.py
"""
Failures raised along the question -> intent -> rows pipeline.

Every terminal error carries the HTTP status the router should answer with,
so the request boundary can render them uniformly.
"""


class QueryError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TranslationFailure(QueryError):
    """The model call failed or its output was not a valid intent. Recovered by the fallback parser."""


class UnanswerableQuery(QueryError):
    """The model declined a question that depends on results it cannot see."""
    status_code = 400


class PolicyViolation(QueryError):
    """Generated SQL is not a read-only statement."""


class UnsupportedOperator(QueryError):
    def __init__(self, operator: str):
        super().__init__(f"Unsupported filter operator: {operator}")
        self.operator = operator


class ExecutionFailure(QueryError):
    """The relational store rejected the query."""
