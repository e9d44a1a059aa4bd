import logging


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.get_json() == {"status": "ok"}


def test_debug_endpoints_hidden_by_default(client):
    assert client.get("/debug/schema").status_code == 404


def test_debug_schema_lists_tables(make_app):
    app = make_app({"DEBUG_ENDPOINTS": True})
    r = app.test_client().get("/debug/schema")
    assert r.status_code == 200
    tables = r.get_json()["tables"]
    assert {"users", "profiles", "reviews", "notifications"} <= set(tables)
    assert "role" in {c["name"] for c in tables["users"]}


def test_debug_logs_expose_warning_buffer(make_app):
    app = make_app({"DEBUG_ENDPOINTS": True})
    c = app.test_client()
    with app.test_request_context("/probe", headers={"X-Request-Id": "rid-1"}):
        from flask import g

        g.request_id = "rid-1"
        logging.getLogger("vett.test").warning("disk almost full")
    data = c.get("/debug/logs?limit=50").get_json()
    assert data["ok"] is True
    hits = [e for e in data["entries"] if e["msg"] == "disk almost full"]
    assert hits and hits[-1]["request_id"] == "rid-1"
    assert hits[-1]["path"] == "/probe"
