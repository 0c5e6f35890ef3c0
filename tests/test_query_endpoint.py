import json


def test_query_grouped_by_source(client, seed_sample, use_model):
    # Mock model output -> deterministic intent
    use_model(json.dumps({
        "table": "inquiries",
        "select": "*",
        "filters": [{"column": "status", "operator": "in", "value": ["Won", "Lost"]}],
        "groupBy": "source",
        "explanation": "Won and lost inquiries by source",
    }))
    r = client.post("/query", json={"query": "won and lost deals by source"})
    assert r.status_code == 200, r.text
    out = r.json()
    assert out["success"] is True
    assert out["count"] == 4
    assert len(out["rawData"]) == 4
    # tie: newest-first rows meet Campaign Handover (I3) before PRYPCO One (I2)
    assert out["data"] == [
        {"name": "Campaign Handover", "value": 2},
        {"name": "PRYPCO One", "value": 2},
    ]
    # grouping without an explicit chart picks bars
    assert out["intent"]["visualization"] == "bar"
    assert out["intent"]["groupBy"] == "source"
    assert out["debug"]["appliedFilters"][0]["operator"] == "in"


def test_query_sql_mode(client, seed_sample, use_model):
    use_model("```json\n" + json.dumps({
        "mode": "sql",
        "sql": "SELECT a.first_name || ' ' || a.last_name AS agent, COUNT(*) AS won "
               "FROM inquiries i JOIN agents a ON a.agents_id = i.agent_id "
               "WHERE i.status = 'Won' GROUP BY agent ORDER BY won DESC",
        "labels": {"x": "Agent", "y": "Won deals"},
        "visualization": "bar",
        "explanation": "Won deals per agent",
    }) + "\n```")
    r = client.post("/query", json={"query": "won deals per agent"})
    assert r.status_code == 200, r.text
    out = r.json()
    assert sorted(row["agent"] for row in out["data"]) == ["Omar Ali", "Sara Khan"]
    assert out["data"] == out["rawData"]
    assert out["intent"]["mode"] == "sql"
    assert out["intent"]["labels"] == {"x": "Agent", "y": "Won deals"}
    assert out["debug"]["sql"].upper().endswith("LIMIT 10000")


def test_query_parameters_reach_the_model(client, seed_sample, use_model):
    gen = use_model(json.dumps({
        "mode": "sql",
        "sql": "SELECT inquiry_id FROM inquiries WHERE property_id = 'PROP-25-00111' ORDER BY inquiry_id",
    }))
    r = client.post("/query", json={
        "query": "inquiries on <PROPERTY_ID>",
        "parameters": "<PROPERTY_ID>=PROP-25-00111",
    })
    assert r.status_code == 200, r.text
    assert [row["inquiry_id"] for row in r.json()["data"]] == ["I1", "I3"]
    assert "<PROPERTY_ID>=PROP-25-00111" in gen.calls[0]["user"]


def test_query_rejects_write_sql(client, seed_sample, use_model):
    use_model('{"mode": "sql", "sql": "SELECT * FROM inquiries; DROP TABLE inquiries"}')
    r = client.post("/query", json={"query": "delete everything"})
    assert r.status_code == 500
    out = r.json()
    assert out["success"] is False
    assert out["debug"]["errorType"] == "PolicyViolation"


def test_query_unknown_operator(client, seed_sample, use_model):
    use_model('{"table": "inquiries", "filters": [{"column": "status", "operator": "regex", "value": "^W"}]}')
    r = client.post("/query", json={"query": "statuses starting with W"})
    assert r.status_code == 500
    out = r.json()
    assert "regex" in out["error"]
    assert out["debug"] == {"errorType": "UnsupportedOperator", "operator": "regex"}


def test_query_unanswerable_follow_up(client, seed_sample, use_model):
    use_model('{"mode": "error", "explanation": "I cannot see previous results. Please ask again with full details."}')
    r = client.post("/query", json={"query": "now group those by agent"})
    assert r.status_code == 400
    out = r.json()
    assert out["success"] is False
    assert out["error"].startswith("I cannot see previous results")


def test_query_database_error(client, seed_sample, use_model):
    use_model('{"mode": "sql", "sql": "SELECT price FROM inquiries"}')
    r = client.post("/query", json={"query": "average price"})
    assert r.status_code == 500
    out = r.json()
    assert out["debug"]["errorType"] == "ExecutionFailure"
    assert "price" in out["error"]


def test_query_fallback_when_model_is_broken(client, seed_sample, use_model):
    use_model(error=RuntimeError("model not loaded"))
    r = client.post("/query", json={"query": "show me won deals from June 2025"})
    assert r.status_code == 200, r.text
    out = r.json()
    assert out["count"] == 2
    assert sorted(row["inquiry_id"] for row in out["data"]) == ["I1", "I3"]
    assert out["intent"]["visualization"] == "table"


def test_query_fallback_group_by_agent(client, seed_sample, use_model):
    use_model(None)
    r = client.post("/query", json={"query": "inquiries by agent"})
    assert r.status_code == 200, r.text
    out = r.json()
    names = {g["name"]: g["value"] for g in out["data"]}
    assert names == {"Sara Khan": 2, "Omar Ali": 2, "Lina Haddad": 2, "Unknown": 1}
    assert sum(names.values()) == out["count"] == 7
    assert out["rawData"][0]["agents"] == {"first_name": "Lina", "last_name": "Haddad"}


def test_query_requires_text(client):
    r = client.post("/query", json={"query": "   "})
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Missing 'query'", "debug": {"errorType": "ValidationError"}}


def test_query_null_error_key_still_answers(client, seed_sample, use_model):
    use_model('{"table": "inquiries", "filters": [], "error": null, "explanation": "all"}')
    r = client.post("/query", json={"query": "all inquiries"})
    assert r.status_code == 200, r.text
    out = r.json()
    assert out["success"] is True
    assert out["count"] == 7
