# askdata/nl/fallback.py
"""
Keyword-driven question -> BuilderIntent translation.

Used whenever the language model is unavailable or returns something we
cannot use, so it must never raise. Behaviour is an ordered table of
rules; each rule belongs to a group and only the first matching rule of a
group fires. Groups are evaluated in table order, so e.g. the table rule
always runs before date rules that depend on the table's timestamp column.
"""
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Optional, Tuple

from askdata.models import TIMESTAMP_COLUMNS
from askdata.nl import dates
from askdata.nl.types import BuilderIntent

Draft = Dict[str, Any]

AGENT_EMBED = "agents(first_name,last_name)"
RECENT_LIMIT = 50
LAST_LIMIT = 20


@dataclass(frozen=True)
class Rule:
    group: str
    pattern: re.Pattern
    effect: Callable[[Draft, re.Match, date], None]
    tables: Optional[Tuple[str, ...]] = None   # only fire for these tables
    unless: Optional[re.Pattern] = None        # veto when this also matches


def _rx(p: str) -> re.Pattern:
    return re.compile(p, re.I)


# ---------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------

def _use_agents(d: Draft, m: re.Match, today: date) -> None:
    d["table"] = "agents"
    d["order"] = {"column": TIMESTAMP_COLUMNS["agents"], "ascending": False}
    d["explanation"] = "Showing agents"


def _date_filter(resolve: Callable[[re.Match, date], dates.DateRange], label: str):
    def effect(d: Draft, m: re.Match, today: date) -> None:
        start, end = resolve(m, today)
        col = TIMESTAMP_COLUMNS[d["table"]]
        d["filters"].append({"column": col, "operator": "gte", "value": dates.day_start(start)})
        d["filters"].append({"column": col, "operator": "lte", "value": dates.day_end(end)})
        d["explanation"] = f"Showing {d['table']} from {label.format(m=m, start=start, end=end)}"
    return effect


def _month(m: re.Match, today: date) -> dates.DateRange:
    name = m.group("month") or m.group("may")
    year = m.group("year") or m.group("may_year")
    year = int(year) if year and int(year) > 0 else None
    return dates.month_range(dates.MONTHS[name.lower()], year, today)


def _eq_filter(column: str, value: str, explanation: str):
    def effect(d: Draft, m: re.Match, today: date) -> None:
        d["filters"].append({"column": column, "operator": "eq", "value": value})
        d["explanation"] = explanation
    return effect


def _group(column: str, explanation: str, embed: bool = False):
    def effect(d: Draft, m: re.Match, today: date) -> None:
        d["group_by"] = column
        d["visualization"] = "bar"
        if embed:
            d["select"] = f"*,{AGENT_EMBED}"
        d["explanation"] = explanation
    return effect


def _limit_n(d: Draft, m: re.Match, today: date) -> None:
    n = int(m.group(1))
    if n > 0:
        d["limit"] = n
        d["explanation"] = f"Showing the last {n} {d['table']}"


def _recent(d: Draft, m: re.Match, today: date) -> None:
    d["limit"] = RECENT_LIMIT
    d["explanation"] = f"Showing the {RECENT_LIMIT} most recent {d['table']}"


def _last(d: Draft, m: re.Match, today: date) -> None:
    d["limit"] = LAST_LIMIT
    d["explanation"] = f"Showing the last {LAST_LIMIT} {d['table']}"


def _metric(d: Draft, m: re.Match, today: date) -> None:
    # last group, so it overrides the bar chart set by grouping
    d["visualization"] = "metric"


# ---------------------------------------------------------------------
# Rule table (order == precedence)
# ---------------------------------------------------------------------

_MONTH_RX = _rx(
    r"\b(?:(?P<month>january|february|march|april|june|july|august|september|october|november|december)"
    r"(?:\s+(?P<year>\d{4}))?|(?P<may>may)\s+(?P<may_year>\d{4}))\b"
)

INQ = ("inquiries",)
AGT = ("agents",)

RULES = (
    Rule("table", _rx(r"agent"), _use_agents, unless=_rx(r"inquir|\b(?:by|per)\s+agents?\b")),

    Rule("date", _rx(r"\btoday\b"),
         _date_filter(lambda m, t: dates.single_day(t), "today")),
    Rule("date", _rx(r"\byesterday\b"),
         _date_filter(lambda m, t: dates.single_day(dates.last_n_days(t, 2)[0]), "yesterday")),
    Rule("date", _rx(r"\b(?:last|past)\s+(\d+)\s+days?\b"),
         _date_filter(lambda m, t: dates.last_n_days(t, int(m.group(1))), "the last {m[1]} days")),
    Rule("date", _rx(r"\b(?:last|past|previous)\s+week\b"),
         _date_filter(lambda m, t: dates.last_week(t), "the last week ({start} to {end})")),
    Rule("date", _rx(r"\bthis\s+week\b"),
         _date_filter(lambda m, t: dates.this_week(t), "this week")),
    Rule("date", _rx(r"\bthis\s+month\b"),
         _date_filter(lambda m, t: dates.this_month(t), "this month")),
    Rule("date", _rx(r"\b(?:last|past|previous)\s+month\b"),
         _date_filter(lambda m, t: dates.last_month(t), "last month ({start:%B %Y})")),
    Rule("date", _MONTH_RX,
         _date_filter(_month, "{start:%B %Y}")),

    Rule("status", _rx(r"\bwon\b"), _eq_filter("status", "Won", "Showing all won deals"), tables=INQ),
    Rule("status", _rx(r"\blost\b"), _eq_filter("status", "Lost", "Showing all lost inquiries"), tables=INQ),
    Rule("status", _rx(r"\bpending\b"), _eq_filter("status", "Pending", "Showing all pending inquiries"), tables=INQ),
    Rule("status", _rx(r"\bcontacted\b"), _eq_filter("status", "Contacted", "Showing contacted inquiries"), tables=INQ),

    Rule("source", _rx(r"\bprypco\s+one\b"),
         _eq_filter("source", "PRYPCO One", "Showing inquiries from PRYPCO One source"), tables=INQ),
    Rule("source", _rx(r"\bcampaign\s+handover\b"),
         _eq_filter("source", "Campaign Handover", "Showing inquiries from Campaign Handover"), tables=INQ),

    Rule("group", _rx(r"\b(?:by|per)\s+source\b"),
         _group("source", "Showing inquiries grouped by source"), tables=INQ),
    Rule("group", _rx(r"\b(?:by|per)\s+status\b"),
         _group("status", "Showing inquiries grouped by status"), tables=INQ),
    Rule("group", _rx(r"\b(?:by|per)\s+lost\s+reason\b"),
         _group("lost_reason", "Showing inquiries grouped by lost reason"), tables=INQ),
    Rule("group", _rx(r"\b(?:by|per)\s+agents?\b"),
         _group("agent_id", "Showing inquiries grouped by agent", embed=True), tables=INQ),
    Rule("group", _rx(r"\b(?:by|per)\s+agency\b"),
         _group("agency_name_supabase", "Showing agents grouped by agency"), tables=AGT),
    Rule("group", _rx(r"\b(?:by|per)\s+(?:sales\s+)?team\b"),
         _group("sales_team_agency_supabase", "Showing agents grouped by sales team"), tables=AGT),

    Rule("quantity", _rx(r"\b(?:last|latest|top)\s+(\d+)\b(?!\s*(?:days?|weeks?|months?|years?)\b)"), _limit_n),
    Rule("quantity", _rx(r"\b(?:recent|latest|newest)\b"), _recent),
    Rule("quantity", _rx(r"\blast\b(?!\s+(?:\d+|days?|weeks?|months?|years?)\b)"), _last),

    Rule("count", _rx(r"\bhow\s+many\b|\bcount\b"), _metric),
)


def _default_draft() -> Draft:
    return {
        "table": "inquiries",
        "select": "*",
        "filters": [],
        "order": {"column": TIMESTAMP_COLUMNS["inquiries"], "ascending": False},
        "limit": None,
        "group_by": None,
        "visualization": "table",
        "explanation": "Showing data based on your query",
    }


def parse_basic(query: str, today: Optional[date] = None) -> BuilderIntent:
    """
    Translate a question into a builder-mode intent using the rule table.
    Always returns a valid intent; unknown questions get the default
    "latest inquiries" view.
    """
    text = str(query or "").lower()
    today = today or date.today()
    draft = _default_draft()
    fired = set()

    for rule in RULES:
        if rule.group in fired:
            continue
        if rule.tables and draft["table"] not in rule.tables:
            continue
        m = rule.pattern.search(text)
        if not m or (rule.unless is not None and rule.unless.search(text)):
            continue
        rule.effect(draft, m, today)
        fired.add(rule.group)

    return BuilderIntent(**draft)
