from conftest import PASSWORD, image_file


def test_404_problem_json(client):
    r = client.get("/__no_such_route__")
    assert r.status_code == 404
    assert r.mimetype == "application/problem+json"
    data = r.get_json()
    assert data["status"] == 404
    assert data["title"] == "Not Found"
    assert data["type"].endswith("/not_found")
    assert data["request_id"] == r.headers["X-Request-Id"]


def test_request_id_is_echoed(client):
    r = client.get("/healthz", headers={"X-Request-Id": "abc-123"})
    assert r.headers["X-Request-Id"] == "abc-123"
    assert r.headers["Cache-Control"] == "no-store"
    r = client.get("/auth/me", headers={"X-Request-Id": "def-456"})
    assert r.get_json()["request_id"] == "def-456"


def test_405_uses_generic_problem(client):
    r = client.delete("/healthz")
    assert r.status_code == 405
    assert r.mimetype == "application/problem+json"
    assert r.get_json()["title"] == "Method Not Allowed"


def test_unhandled_exception_returns_incident_id(make_app):
    app = make_app()

    def _boom():
        raise RuntimeError("kaboom")

    app.add_url_rule("/__boom__", "boom", _boom)
    r = app.test_client().get("/__boom__")
    assert r.status_code == 500
    data = r.get_json()
    assert data["incident_id"]
    assert "kaboom" not in r.get_data(as_text=True)


def test_payload_too_large(make_app):
    app = make_app({"MAX_CONTENT_LENGTH": 1024})
    from vett.account_service import set_role, signup
    from vett.db import get_session

    with app.app_context():
        db = get_session()
        user = signup(db, "huge@example.com", PASSWORD)
        set_role(db, user.id, "submitter")
    c = app.test_client()
    c.post("/auth/login", json={"email": "huge@example.com", "password": PASSWORD})
    r = c.post(
        "/api/profiles",
        data={"image0": image_file(data=b"\x89PNG" + b"\x00" * 4096)},
        content_type="multipart/form-data",
    )
    assert r.status_code == 413
    assert r.get_json()["type"].endswith("/payload_too_large")


def test_domain_errors_render_problem_details():
    from flask import Flask

    from vett.errors import ConflictError, ValidationError, register_error_handlers

    app = Flask(__name__)
    register_error_handlers(app)

    @app.get("/conflict")
    def _conflict():
        raise ConflictError("already_reviewed")

    @app.get("/invalid")
    def _invalid():
        raise ValidationError("Rating is required")

    c = app.test_client()
    r = c.get("/conflict")
    assert r.status_code == 409
    assert r.get_json()["detail"] == "already_reviewed"
    r = c.get("/invalid")
    assert r.status_code == 422
    assert r.get_json()["errors"] == [{"field": None, "message": "Rating is required"}]


def test_validation_error_first_message():
    from vett.errors import ValidationError

    err = ValidationError([{"field": "a", "message": "first"}, {"field": "b", "message": "second"}])
    assert err.first_message == "first"
    assert ValidationError([]).first_message == "validation_error"
