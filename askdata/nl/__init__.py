from .fallback import parse_basic
from .translator import IntentTranslator
from .types import BuilderIntent, ErrorIntent, Filter, Operator, SqlIntent

__all__ = [
    "parse_basic",
    "IntentTranslator",
    "BuilderIntent",
    "ErrorIntent",
    "Filter",
    "Operator",
    "SqlIntent",
]
