import re

import pytest

from askdata.errors import PolicyViolation
from askdata.query.safety import assert_safe, enforce_limit, finalize_sql


@pytest.mark.parametrize("keyword", ["DROP", "DELETE", "UPDATE", "INSERT", "ALTER", "CREATE"])
def test_rejects_stacked_write_statements(keyword):
    with pytest.raises(PolicyViolation):
        assert_safe(f"SELECT * FROM inquiries; {keyword} TABLE inquiries")
    with pytest.raises(PolicyViolation):
        assert_safe(f"select * from inquiries;{keyword.lower()} agents")


def test_only_select():
    with pytest.raises(PolicyViolation) as exc:
        assert_safe("DROP TABLE agents")
    assert "only select" in exc.value.message.lower()


def test_rejects_empty_sql():
    with pytest.raises(PolicyViolation):
        assert_safe("   ")


def test_rejects_data_modifying_cte():
    with pytest.raises(PolicyViolation):
        assert_safe("WITH gone AS (DELETE FROM inquiries RETURNING *) SELECT * FROM gone")


@pytest.mark.parametrize("sql", [
    "SELECT * FROM inquiries",
    "  select status, count(*) from inquiries group by status",
    "WITH won AS (SELECT * FROM inquiries WHERE status = 'Won') SELECT count(*) FROM won",
    "-- latest first\nSELECT * FROM inquiries ORDER BY inquiry_created_ts DESC",
    "SELECT * FROM inquiries WHERE lost_reason = 'Not interested';",
])
def test_accepts_read_only_queries(sql):
    assert_safe(sql)


def test_force_limit():
    out = enforce_limit("SELECT * FROM inquiries")
    assert len(re.findall(r"\blimit\b", out, flags=re.I)) == 1
    assert out.endswith("LIMIT 10000")


def test_force_limit_drops_trailing_semicolon():
    out = enforce_limit("SELECT * FROM agents;  ")
    assert out == "SELECT * FROM agents\nLIMIT 10000"


def test_existing_limit_passes_through_unchanged():
    sql = "SELECT * FROM inquiries ORDER BY inquiry_created_ts DESC limit 20"
    assert enforce_limit(sql) == sql


@pytest.mark.parametrize("tail", ["; -- done", ";\n-- done\n", " /* all rows */ ;", ";;"])
def test_force_limit_drops_trailing_comments(tail):
    assert enforce_limit("SELECT inquiry_id FROM inquiries" + tail) == "SELECT inquiry_id FROM inquiries\nLIMIT 10000"
    assert enforce_limit("SELECT inquiry_id FROM inquiries LIMIT 3" + tail) == "SELECT inquiry_id FROM inquiries LIMIT 3"


def test_force_limit_keeps_dashes_inside_literals():
    sql = "SELECT inquiry_id FROM inquiries WHERE lost_reason = '--'"
    assert enforce_limit(sql) == sql + "\nLIMIT 10000"


def test_finalize_sql_gates_before_limiting():
    with pytest.raises(PolicyViolation):
        finalize_sql("SELECT 1; drop table agents")
    assert finalize_sql("SELECT 1 AS ok", limit=5) == "SELECT 1 AS ok\nLIMIT 5"
