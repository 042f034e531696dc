import json
import logging

from blueprints.core.routes import JSONFormatter

def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    js = r.get_json()
    assert js["status"] == "ok"
    assert js["ts"].endswith("Z")

def test_csrf_token_endpoint(client):
    r = client.get("/api/v1/csrf")
    assert r.status_code == 200
    token = r.get_json()["csrf"]
    assert token
    assert "csrf_token=" in r.headers.get("Set-Cookie", "")

def test_json_formatter_keeps_known_extra_fields():
    rec = logging.LogRecord("blueprints.planning.services", logging.WARNING, __file__, 1,
                            "capacity mismatch", None, None)
    rec.event = "capacity_mismatch"
    rec.required = 26
    rec.available = 25
    rec.secret = "ignored"
    out = json.loads(JSONFormatter().format(rec))
    assert out["level"] == "WARNING"
    assert out["logger"] == "blueprints.planning.services"
    assert out["msg"] == "capacity mismatch"
    assert (out["event"], out["required"], out["available"]) == ("capacity_mismatch", 26, 25)
    assert "secret" not in out
    assert out["ts"].endswith("Z")

def test_json_handler_attached_once(app):
    from app import create_app
    create_app("test")
    handlers = [h for h in logging.getLogger("blueprints").handlers
                if isinstance(h.formatter, JSONFormatter)]
    assert len(handlers) == 1

def test_requests_are_logged(client, caplog):
    with caplog.at_level(logging.INFO):
        client.get("/health")
    rec = [r for r in caplog.records if getattr(r, "event", None) == "http_request"]
    assert rec and rec[-1].path == "/health" and rec[-1].status == 200
