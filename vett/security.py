"""Security middleware and helpers.

Features:
 - CSRF double-submit cookie for cookie-authenticated state-changing requests.
 - Security headers (HSTS, CSP, Referrer-Policy, Permissions-Policy).

CSRF Policy:
 - SAFE methods always allowed.
 - /auth/ JSON endpoints and requests carrying a Bearer token are exempt
   (no ambient cookie authority involved).
 - Otherwise the X-CSRF-Token header or the ``csrf_token`` form field must
   equal the csrf_token cookie. Denials are RFC7807 problem+json.
"""

from __future__ import annotations

import secrets

from flask import Flask, g, request

from .cookies import set_secure_cookie
from .http_errors import csrf_invalid

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}
EXEMPT_PREFIXES = ("/auth/",)
CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"


def csrf_token() -> str:
    """Token for templates/forms; mints one (set on the response) when the cookie is missing."""
    existing = request.cookies.get(CSRF_COOKIE_NAME)
    if existing:
        return existing
    if not hasattr(g, "_new_csrf_token"):
        g._new_csrf_token = secrets.token_hex(16)
    return g._new_csrf_token


def _is_exempt(path: str, method: str) -> bool:
    if method in SAFE_METHODS:
        return True
    if any(path.startswith(p) for p in EXEMPT_PREFIXES):
        return True
    return request.headers.get("Authorization", "").lower().startswith("bearer ")


def _csrf_check(app: Flask):
    if not app.config.get("CSRF_ENABLED", True):
        return None
    if _is_exempt(request.path or "/", request.method.upper()):
        return None
    sent_cookie = request.cookies.get(CSRF_COOKIE_NAME)
    candidate = request.headers.get(CSRF_HEADER_NAME) or request.form.get("csrf_token")
    if sent_cookie and candidate and secrets.compare_digest(sent_cookie, candidate):
        return None
    reason = "mismatch" if candidate else "missing"
    app.logger.warning("CSRF rejected reason=%s path=%s", reason, request.path)
    return csrf_invalid()


def init_security(app: Flask) -> Flask:
    @app.before_request
    def _security_before_request():
        csrf_token()
        return _csrf_check(app)

    @app.after_request
    def _security_after_request(resp):
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        resp.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if not app.config.get("TESTING") and not app.config.get("DEBUG"):
            resp.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")
        resp.headers.setdefault(
            "Content-Security-Policy",
            "default-src 'self'; img-src 'self' data:; object-src 'none'; base-uri 'self'; frame-ancestors 'none'",
        )
        if hasattr(g, "_new_csrf_token"):
            # Readable by page scripts that mirror it into X-CSRF-Token
            set_secure_cookie(resp, CSRF_COOKIE_NAME, g._new_csrf_token, httponly=False, samesite="Lax")
        return resp

    app.jinja_env.globals["csrf_token"] = csrf_token
    return app


__all__ = ["init_security", "csrf_token", "CSRF_COOKIE_NAME", "CSRF_HEADER_NAME"]
