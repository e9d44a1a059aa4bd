from __future__ import annotations

import time

from flask import Blueprint, current_app, jsonify, request, session

from .account_service import authenticate, normalize_email, signup as create_account
from .account_state import landing_for, state_from_user
from .app_authz import bearer_token, current_account, decode_token, jwt_settings, require_account
from .app_sessions import SessionError, clear_login, get_session_user_id, persist_login
from .db import get_session
from .errors import BadRequestError, RateLimitError
from .jwt_utils import DEFAULT_ACCESS_TTL, DEFAULT_REFRESH_TTL, JWTError, issue_token_pair, select_signing_secret
from .models import Profile, User

bp = Blueprint("auth", __name__, url_prefix="/auth")


# --- Login throttling ---
# key -> {failures:int, first:ts, lock_until:ts?}; lives on the app so test apps never share it.
def _failure_store() -> dict[str, dict[str, float]]:
    return current_app.extensions.setdefault("vett_login_failures", {})


def _throttle_key(email: str) -> str:
    return f"{email}:{request.remote_addr or 'na'}"


def _throttle_check(key: str, now: float) -> dict[str, float]:
    rl_cfg = current_app.config.get("AUTH_RATE_LIMIT", {"window_sec": 300, "max_failures": 5, "lock_sec": 600})
    store = _failure_store()
    rec = store.get(key)
    if rec is None:
        rec = {"failures": 0, "first": now}
        store[key] = rec
        return rec
    lock_until = rec.get("lock_until")
    if lock_until and lock_until > now:
        raise RateLimitError(retry_after=int(lock_until - now) or 1)
    if now - rec["first"] > rl_cfg.get("window_sec", 300):
        # slide window
        rec.update({"failures": 0, "first": now})
        rec.pop("lock_until", None)
    return rec


def _throttle_fail(rec: dict[str, float], now: float) -> None:
    rl_cfg = current_app.config.get("AUTH_RATE_LIMIT", {"window_sec": 300, "max_failures": 5, "lock_sec": 600})
    rec["failures"] += 1
    if rec["failures"] >= rl_cfg.get("max_failures", 5):
        lock_sec = rl_cfg.get("lock_sec", 600)
        rec["lock_until"] = now + lock_sec
        current_app.logger.warning("Login locked for %ss after %d failures", lock_sec, int(rec["failures"]))
        raise RateLimitError(retry_after=int(lock_sec))


def check_credentials(db, email: str | None, password: str | None) -> User:
    """Throttled credential check shared by the JSON API and the HTML login form."""
    email_n = normalize_email(email)
    if not email_n or not password:
        raise BadRequestError("missing credentials")
    now = time.time()
    key = _throttle_key(email_n)
    rec = _throttle_check(key, now)
    user = authenticate(db, email_n, password)
    if user is None:
        _throttle_fail(rec, now)
        raise SessionError("invalid credentials")
    _failure_store().pop(key, None)
    return user


def issue_tokens(db, user: User) -> dict[str, object]:
    """Mint an access/refresh pair and remember the refresh jti; the previous refresh token stops working."""
    settings = jwt_settings()
    signing_secret = select_signing_secret(settings["secret"], settings["secrets_list"])
    access, refresh, refresh_jti = issue_token_pair(
        user_id=user.id,
        secret=signing_secret,
        access_ttl=current_app.config.get("JWT_ACCESS_TTL", DEFAULT_ACCESS_TTL),
        refresh_ttl=current_app.config.get("JWT_REFRESH_TTL", DEFAULT_REFRESH_TTL),
        issuer=settings["issuer"] or "vett",
        audience=settings["audience"] or "api",
    )
    user.refresh_token_jti = refresh_jti
    db.commit()
    return {
        "access_token": access,
        "refresh_token": refresh,
        "token_type": "Bearer",
        "expires_in": current_app.config.get("JWT_ACCESS_TTL", DEFAULT_ACCESS_TTL),
    }


def login_user(db, user: User) -> dict[str, object]:
    """Start a browser session and mint a token pair for API clients."""
    tokens = issue_tokens(db, user)
    persist_login(session, user.id)
    current_app.logger.info("Login user_id=%s", user.id)
    return tokens


def _state_payload(db, user: User) -> dict[str, object]:
    has_submission = db.query(Profile.id).filter(Profile.user_id == user.id).first() is not None
    state = state_from_user(user, has_submission)
    return {"account": state.to_dict(), "landing": landing_for(state)}


# --- Routes ---
@bp.post("/signup")
def signup():
    data = request.get_json(silent=True) or {}
    db = get_session()
    user = create_account(db, data.get("email"), data.get("password"), data.get("confirm_password"))
    tokens = login_user(db, user)
    return jsonify({"ok": True, **tokens, **_state_payload(db, user)}), 201


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    db = get_session()
    user = check_credentials(db, data.get("email"), data.get("password"))
    tokens = login_user(db, user)
    return jsonify({"ok": True, **tokens, **_state_payload(db, user)})


@bp.post("/logout")
def logout():
    db = get_session()
    user_id = get_session_user_id()
    body = request.get_json(silent=True) or {}
    token = body.get("refresh_token")
    if token:
        try:
            payload = decode_token(token, "refresh")
            user_id = user_id or payload["sub"]
        except JWTError:
            raise BadRequestError("invalid token") from None
    if user_id is not None:
        user = db.get(User, user_id)
        if user is not None and user.refresh_token_jti:
            user.refresh_token_jti = None
            db.commit()
    clear_login()
    return jsonify({"ok": True})


@bp.post("/refresh")
def refresh():
    data = request.get_json(silent=True) or {}
    token = data.get("refresh_token")
    if not token:
        raise BadRequestError("missing token")
    try:
        payload = decode_token(token, "refresh")
    except JWTError:
        raise SessionError("invalid token") from None
    db = get_session()
    user = db.get(User, payload["sub"])
    if user is None or user.refresh_token_jti != payload["jti"]:
        raise SessionError("invalid token")
    tokens = issue_tokens(db, user)
    return jsonify({"ok": True, **tokens})


@bp.get("/status")
def status():
    # Always 200 so polling clients can branch on the body
    try:
        state = current_account()
    except SessionError as e:
        return jsonify({"authenticated": False, "error": str(e)})
    if state is None:
        return jsonify({"authenticated": False, "error": "no active session"})
    return jsonify(
        {
            "authenticated": True,
            "user_id": state.user_id,
            "role": state.role,
            "profile_complete": state.profile_complete,
            "via": "bearer" if bearer_token() else "session",
            "landing": landing_for(state),
        }
    )


@bp.get("/me")
def me():
    state = require_account()
    return jsonify({"ok": True, "account": state.to_dict(), "landing": landing_for(state)})
