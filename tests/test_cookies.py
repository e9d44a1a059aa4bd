from flask import Response

from vett.cookies import set_secure_cookie


def _cookie_header(app):
    with app.test_request_context("/"):
        resp = Response("ok")
        set_secure_cookie(resp, "demo", "v", httponly=False)
        return resp.headers.get("Set-Cookie", "")


def test_secure_flag_off_under_testing(app):
    header = _cookie_header(app)
    assert "demo=v" in header
    assert "Secure" not in header
    assert "SameSite=Lax" in header


def test_secure_flag_on_in_production(make_app):
    app = make_app({"TESTING": False})
    header = _cookie_header(app)
    assert "Secure" in header
    assert "HttpOnly" not in header
