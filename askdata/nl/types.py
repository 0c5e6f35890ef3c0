# askdata/nl/types.py
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

Table = Literal["agents", "inquiries"]
Visualization = Literal["table", "bar", "pie", "line", "metric", "histogram", "pivot"]


class Operator(str, Enum):
    """Filter operators the query builder knows how to apply."""
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    ILIKE = "ilike"
    IN = "in"
    IS = "is"
    BETWEEN = "between"
    OR = "or"
    CONTAINS = "contains"
    CONTAINED_BY = "containedBy"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Filter(_Frozen):
    column: str = ""
    # Kept as the raw string: unknown operators are rejected at execution
    # time with the operator's name, not dropped during parsing.
    operator: str
    value: Any = None

    @model_validator(mode="after")
    def _check_shape(self):
        if self.operator == Operator.BETWEEN.value:
            if not isinstance(self.value, (list, tuple)) or len(self.value) != 2:
                raise ValueError("'between' expects a [low, high] pair")
        elif self.operator == Operator.OR.value:
            if not isinstance(self.value, str) or not self.value.strip():
                raise ValueError("'or' expects a disjunction string like 'status.eq.Won,status.eq.Lost'")
        elif not self.column:
            raise ValueError(f"filter '{self.operator}' needs a column")
        return self


class Order(_Frozen):
    column: str
    ascending: bool = False


class Labels(_Frozen):
    x: Optional[str] = None
    y: Optional[str] = None


class BuilderIntent(_Frozen):
    """Table + projection + filters, run through the query builder."""
    mode: Literal["builder"] = "builder"
    table: Table = "inquiries"
    select: str = "*"
    filters: List[Filter] = Field(default_factory=list)
    group_by: Optional[str] = Field(None, alias="groupBy")
    order: Optional[Order] = None
    limit: Optional[int] = Field(None, gt=0)
    visualization: Optional[Visualization] = None  # None -> caller did not choose
    explanation: str = ""


class SqlIntent(_Frozen):
    """A single read-only statement for what the builder cannot express."""
    mode: Literal["sql"] = "sql"
    sql: str = Field(min_length=1)
    labels: Optional[Labels] = None
    visualization: Optional[Visualization] = None
    explanation: str = ""


class ErrorIntent(_Frozen):
    """The question cannot be answered as asked; `explanation` tells the user why."""
    mode: Literal["error"] = "error"
    explanation: str = "This question cannot be answered on its own. Please restate it."
    visualization: Optional[Visualization] = None


Intent = Annotated[Union[BuilderIntent, SqlIntent, ErrorIntent], Field(discriminator="mode")]

_intent_adapter = TypeAdapter(Intent)


def parse_intent(data: dict) -> Union[BuilderIntent, SqlIntent, ErrorIntent]:
    """Validate a plain dict (with `mode` set) into an Intent. Raises pydantic.ValidationError."""
    return _intent_adapter.validate_python(data)


def dump_intent(intent) -> dict:
    """JSON-ready dict using the wire names (groupBy, ...)."""
    return intent.model_dump(by_alias=True, mode="json")
