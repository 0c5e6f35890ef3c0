from datetime import date, timedelta

from askdata.settings import ROW_CAP

# ---------------------------------------------------------------------
# Schema and rules given to the model
# ---------------------------------------------------------------------

SCHEMA = """\
1. inquiries table:
   - inquiry_id (text, primary key)
   - agent_id (text, foreign key to agents.agents_id)
   - property_id (text)
   - inquiry_created_ts (timestamp)
   - source (text: "PRYPCO One", "Campaign Handover", etc.)
   - status (text: "Won", "Lost", "Pending", "New", "Contacted")
   - lost_reason (text: "Unresponsive", "Not interested", "Duplicate", etc.)
   - ts_contacted (timestamp)
   - ts_lost_reason (timestamp)
   - ts_won (timestamp)
   - new_viewings (text)

2. agents table:
   - agents_id (text, primary key)
   - first_name (text)
   - last_name (text)
   - email_address (text)
   - whatsapp_number_supabase (text)
   - years_of_experience (integer)
   - sign_up_timestamp (date)
   - sales_team_agency_supabase (text)
   - agency_name_supabase (text)
"""

RESPONSE_FORMATS = """\
Builder mode (simple lookups on ONE table, optionally embedding the agent):
{
  "mode": "builder",
  "table": "inquiries" or "agents",
  "select": "*" or "column1,column2" or "*,agents(first_name,last_name)",
  "filters": [{"column": "column_name", "operator": "eq|neq|gt|gte|lt|lte|like|ilike|in|is|between|or|contains|containedBy", "value": "..."}],
  "order": {"column": "column_name", "ascending": true or false},
  "limit": number or null,
  "groupBy": "column_name" or null,
  "visualization": "table|bar|pie|line|metric|histogram|pivot",
  "explanation": "Human-readable explanation"
}

SQL mode (joins, aggregates, window functions, multi-level grouping):
{
  "mode": "sql",
  "sql": "SELECT ...",
  "labels": {"x": "axis label", "y": "axis label"},
  "visualization": "table|bar|pie|line|metric|histogram|pivot",
  "explanation": "Human-readable explanation"
}

Error mode (the question refers to earlier results or context you cannot see):
{"mode": "error", "explanation": "Tell the user to ask again with all details in one question."}
"""


def build_system_prompt(today: date) -> str:
    """Full instructions for one translation, anchored on `today`."""
    week_start = today - timedelta(days=7)
    week_end = today - timedelta(days=1)
    return (
        "You translate questions about a real-estate sales database into query descriptors.\n"
        f"Today's date is {today.isoformat()}.\n\n"
        "Available tables and columns:\n\n"
        f"{SCHEMA}\n"
        "Reply with exactly one JSON object in one of these formats:\n\n"
        f"{RESPONSE_FORMATS}\n"
        "Rules:\n"
        "- Prefer builder mode; use SQL mode only when builder mode cannot express the question.\n"
        f"- \"last week\" means {week_start.isoformat()}T00:00:00Z to {week_end.isoformat()}T23:59:59Z "
        "(two filters: gte and lte on the timestamp column).\n"
        f"- \"this month\" means {today.replace(day=1).isoformat()}T00:00:00Z up to today.\n"
        "- \"last N days\" means the N days up to and including today.\n"
        "- Dates are ISO 8601 strings.\n"
        "- For \"recent\" or \"latest\": order by inquiry_created_ts descending with limit 20-50.\n"
        "- To show agent names on inquiries use select \"*,agents(first_name,last_name)\".\n"
        "- For grouping set groupBy and keep every needed column in select.\n"
        "- 'between' takes [low, high]; 'or' takes a string like \"status.eq.Won,status.eq.Lost\".\n"
        "- SQL must be a single read-only SELECT (or WITH ... SELECT) statement. "
        "Never INSERT, UPDATE, DELETE, CREATE, ALTER or DROP.\n"
        f"- Every SQL statement must end with LIMIT {ROW_CAP} unless the question asks for fewer rows.\n"
        "- Values given as <NAME>=value before the question must be substituted wherever <NAME> applies.\n"
        "- If the question depends on previous results (\"those\", \"the above\", \"previous results\"), "
        "use error mode instead of guessing.\n"
        "- Use exact column names as listed above.\n\n"
        "RESPOND ONLY WITH VALID JSON."
    )


def build_user_prompt(query: str, parameters: str | None = None) -> str:
    """Question text, with any caller-bound parameters in front of it."""
    query = query.strip()
    if parameters and parameters.strip():
        return f"{parameters.strip()}\n\n{query}"
    return query
