# askdata/query/builder.py
"""
BuilderIntent -> SQLAlchemy Core SELECT.

The projection string follows the PostgREST conventions the model is
prompted with: "*", "col_a,col_b", and embeds such as
"*,agents(first_name,last_name)" which become a LEFT JOIN whose columns are
folded back into a nested dict on each row.
"""
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Tuple

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, and_, false, or_, select, true
from sqlalchemy.sql.expression import ColumnElement, Select

from askdata.db import Base
from askdata.errors import ExecutionFailure, UnsupportedOperator
from askdata.models import RELATIONS, TIMESTAMP_COLUMNS
from askdata.nl.types import BuilderIntent, Filter, Operator

_EMBED = re.compile(r"^(\w+)(?:!\w+)?\s*\((.*)\)$", re.S)


def split_top_level(s: str, sep: str = ",") -> List[str]:
    """Split on `sep` outside parentheses: "a,b(c,d)" -> ["a", "b(c,d)"]."""
    parts, depth, buf = [], 0, []
    for ch in s:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(depth - 1, 0)
        if ch == sep and depth == 0:
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    parts.append("".join(buf))
    return [p.strip() for p in parts if p.strip()]


def _table(name: str):
    t = Base.metadata.tables.get(name)
    if t is None:
        raise ExecutionFailure(f'relation "{name}" does not exist')
    return t


def _column(table, name: str):
    col = table.c.get(name)
    if col is None:
        raise ExecutionFailure(f"column {table.name}.{name} does not exist")
    return col


@dataclass
class Projection:
    """Which base columns and embedded columns a query returns."""
    table: str
    columns: List[str] = field(default_factory=list)
    embeds: Dict[str, List[str]] = field(default_factory=dict)

    def assemble(self, row) -> Dict[str, Any]:
        out = {c: row[c] for c in self.columns}
        for embed, cols in self.embeds.items():
            nested = {c: row[f"{embed}__{c}"] for c in cols}
            # LEFT JOIN without a match -> null, like a missing foreign row
            out[embed] = nested if any(v is not None for v in nested.values()) else None
        return out


def _relation(table: str, embed: str) -> Tuple[str, str]:
    rel = RELATIONS.get((table, embed))
    if rel is None:
        raise ExecutionFailure(f"Could not find a relationship between '{table}' and '{embed}'")
    return rel


def parse_select(table_name: str, select_str: str) -> Projection:
    base = _table(table_name)
    proj = Projection(table=table_name)

    def add(cols: List[str], name: str) -> None:
        if name not in cols:
            cols.append(name)

    for item in split_top_level(select_str or "*"):
        m = _EMBED.match(item)
        if m:
            embed = m.group(1)
            _relation(table_name, embed)
            target = _table(embed)
            cols = proj.embeds.setdefault(embed, [])
            for inner in split_top_level(m.group(2)) or ["*"]:
                if inner == "*":
                    for c in target.c:
                        add(cols, c.name)
                else:
                    add(cols, _column(target, inner).name)
        elif item == "*":
            for c in base.c:
                add(proj.columns, c.name)
        else:
            add(proj.columns, _column(base, item).name)
    return proj


# ---------------------------------------------------------------------
# Value coercion: JSON values -> the column's Python type
# ---------------------------------------------------------------------

def _parse_datetime(s: str) -> datetime:
    s = s.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s)


def coerce(col, value: Any) -> Any:
    if value is None or (isinstance(value, str) and value.lower() == "null"):
        return None
    t = col.type
    try:
        if isinstance(t, DateTime) and isinstance(value, str):
            return _parse_datetime(value)
        if isinstance(t, Date) and isinstance(value, str):
            return _parse_datetime(value).date() if len(value.strip()) > 10 else date.fromisoformat(value.strip())
        if isinstance(t, Boolean) and isinstance(value, str):
            return value.strip().lower() in ("true", "t", "1", "yes")
        if isinstance(t, Integer) and isinstance(value, (str, float)) and not isinstance(value, bool):
            return int(value)
        if isinstance(t, Numeric) and isinstance(value, str):
            return float(value)
    except ValueError:
        raise ExecutionFailure(f'invalid input syntax for {col.table.name}.{col.name}: "{value}"')
    return value


def _as_list(value: Any) -> List[Any]:
    """["a", "b"], "(a,b)" and "a,b" all mean the same list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        v = value.strip()
        if v.startswith("(") and v.endswith(")"):
            v = v[1:-1]
        return [p.strip().strip('"') for p in v.split(",") if p.strip()]
    return [value]


def _pattern(value: Any) -> str:
    # PostgREST accepts * as the wildcard
    return str(value).replace("*", "%")


def _is(col, value: Any) -> ColumnElement:
    v = value.strip().lower() if isinstance(value, str) else value
    if v is None or v == "null":
        return col.is_(None)
    if v is True or v == "true":
        return col.is_(true())
    if v is False or v == "false":
        return col.is_(false())
    raise ExecutionFailure(f"'is' expects null, true or false, got {value!r}")


def _contains(col, value: Any) -> ColumnElement:
    if isinstance(value, (list, tuple)):
        return and_(*[col.contains(str(v), autoescape=True) for v in value])
    return col.contains(str(value), autoescape=True)


# Column-level operators. `or` combines other filters, so it is built separately.
_SIMPLE: Dict[Operator, Callable[[Any, Any], ColumnElement]] = {
    Operator.EQ: lambda c, v: c == coerce(c, v),
    Operator.NEQ: lambda c, v: c != coerce(c, v),
    Operator.GT: lambda c, v: c > coerce(c, v),
    Operator.GTE: lambda c, v: c >= coerce(c, v),
    Operator.LT: lambda c, v: c < coerce(c, v),
    Operator.LTE: lambda c, v: c <= coerce(c, v),
    Operator.LIKE: lambda c, v: c.like(_pattern(v)),
    Operator.ILIKE: lambda c, v: c.ilike(_pattern(v)),
    Operator.IN: lambda c, v: c.in_([coerce(c, x) for x in _as_list(v)]),
    Operator.IS: _is,
    Operator.BETWEEN: lambda c, v: c.between(coerce(c, v[0]), coerce(c, v[1])),
    Operator.CONTAINS: _contains,
    Operator.CONTAINED_BY: lambda c, v: c.in_([coerce(c, x) for x in _as_list(v)]),
}

_unhandled = set(Operator) - set(_SIMPLE) - {Operator.OR}
if _unhandled:
    raise RuntimeError(f"operators without a builder: {sorted(o.value for o in _unhandled)}")


_OPERATOR_NAMES = {o.value for o in Operator}


def _operator(name: str) -> Operator:
    try:
        return Operator(name)
    except ValueError:
        raise UnsupportedOperator(name) from None


def _parse_or_term(term: str) -> Tuple[str, Operator, str]:
    """"status.eq.Won" -> ("status", EQ, "Won"); "agents.last_name.ilike.*x*" keeps the dotted column."""
    parts = term.split(".")
    for i in range(1, len(parts)):
        if parts[i] in _OPERATOR_NAMES:
            op = Operator(parts[i])
            if op in (Operator.OR, Operator.BETWEEN):
                raise UnsupportedOperator(f"{op.value} (inside or)")
            return ".".join(parts[:i]), op, ".".join(parts[i + 1:]).strip('"')
    raise UnsupportedOperator(parts[1] if len(parts) > 2 else term)


class _Resolver:
    """Column lookup for the base table and any embedded (joined) tables."""

    def __init__(self, table_name: str):
        self.table = _table(table_name)
        self.joined: Dict[str, Any] = {}

    def join(self, embed: str) -> None:
        if embed not in self.joined:
            _relation(self.table.name, embed)
            self.joined[embed] = _table(embed)

    def __call__(self, name: str):
        if "." in name:
            embed, col = name.split(".", 1)
            self.join(embed)
            return _column(self.joined[embed], col)
        return _column(self.table, name)

    def from_clause(self):
        clause = self.table
        for embed, target in self.joined.items():
            fk, pk = RELATIONS[(self.table.name, embed)]
            clause = clause.outerjoin(target, self.table.c[fk] == target.c[pk])
        return clause


def build_condition(resolve: Callable[[str], Any], f: Filter) -> ColumnElement:
    op = _operator(f.operator)
    if op is Operator.OR:
        expr = str(f.value).strip()
        if expr.startswith("(") and expr.endswith(")"):
            expr = expr[1:-1]
        clauses = []
        for term in split_top_level(expr):
            col_name, term_op, raw = _parse_or_term(term)
            value: Any = raw
            if term_op is Operator.IN:
                value = _as_list(raw)
            clauses.append(_SIMPLE[term_op](resolve(col_name), value))
        if not clauses:
            raise ExecutionFailure("'or' filter has no conditions")
        return or_(*clauses)
    return _SIMPLE[op](resolve(f.column), f.value)


def build_query(intent: BuilderIntent, row_cap: int) -> Tuple[Select, Projection]:
    """
    Translate the intent into one SELECT. Filters are ANDed in list order;
    without an explicit order the table's timestamp column sorts newest first.
    """
    proj = parse_select(intent.table, intent.select)
    resolve = _Resolver(intent.table)
    for embed in proj.embeds:
        resolve.join(embed)

    conditions = [build_condition(resolve, f) for f in intent.filters]

    if intent.order is not None:
        order_col = resolve(intent.order.column)
        ordering = order_col.asc() if intent.order.ascending else order_col.desc()
    else:
        ordering = resolve(TIMESTAMP_COLUMNS[intent.table]).desc()

    cols = [resolve.table.c[c].label(c) for c in proj.columns]
    for embed, names in proj.embeds.items():
        target = resolve.joined[embed]
        cols.extend(target.c[c].label(f"{embed}__{c}") for c in names)

    stmt = select(*cols).select_from(resolve.from_clause())
    for cond in conditions:
        stmt = stmt.where(cond)
    limit = min(intent.limit, row_cap) if intent.limit else row_cap
    stmt = stmt.order_by(ordering).limit(limit)
    return stmt, proj
