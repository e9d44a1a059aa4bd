"""Authentication + authorization helpers for request handlers.

Identity comes from a Bearer access token (API clients) or the signed cookie
session (browser). Whatever the source, the account state is then loaded from
the database once per request and cached on ``flask.g``.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from flask import current_app, g, request

from .account_state import AccountState, load_account_state
from .app_sessions import SessionError, get_session_user_id
from .db import get_session
from .jwt_utils import JWTError, TokenPayload, decode as jwt_decode
from .roles import Role

P = ParamSpec("P")
R = TypeVar("R")

_UNSET = object()


class AuthzError(Exception):
    """Signals an authorization (403) failure to be caught by centralized handlers."""

    required: Role | None

    def __init__(self, message: str = "forbidden", required: Role | None = None):
        super().__init__(message)
        self.required = required


def jwt_settings() -> dict[str, Any]:
    cfg = current_app.config
    return {
        "secret": cfg.get("SECRET_KEY"),
        "secrets_list": cfg.get("JWT_SECRETS") or [],
        "issuer": cfg.get("JWT_ISSUER"),
        "audience": cfg.get("JWT_AUDIENCE"),
        "leeway": cfg.get("JWT_LEEWAY_SECONDS", 60),
    }


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.lower().startswith("bearer "):
        return None
    parts = auth_header.split(None, 1)
    token = parts[1].strip() if len(parts) == 2 else ""
    return token or None


def decode_token(token: str, expected_type: str) -> TokenPayload:
    payload = jwt_decode(token, **jwt_settings())
    if payload["type"] != expected_type:
        raise JWTError("wrong token type")
    return payload


def resolve_user_id() -> int | None:
    """Bearer header wins over the cookie session; an invalid bearer is a 401."""
    token = bearer_token()
    if token is not None:
        try:
            return decode_token(token, "access")["sub"]
        except JWTError as e:
            current_app.logger.info("Rejected bearer token: %s", e)
            raise SessionError("invalid token") from e
    return get_session_user_id()


def current_account() -> AccountState | None:
    cached = g.get("account_state", _UNSET)
    if cached is not _UNSET:
        return cached
    user_id = resolve_user_id()
    state = load_account_state(get_session(), user_id) if user_id is not None else None
    g.account_state = state
    return state


def refresh_account() -> AccountState | None:
    """Forget the per-request cache after a write to the users/profiles rows."""
    g.pop("account_state", None)
    return current_account()


def require_account() -> AccountState:
    state = current_account()
    if state is None:
        raise SessionError("authentication required")
    return state


def require_role(state: AccountState, *roles: Role) -> None:
    if state.role not in roles:
        raise AuthzError("forbidden", required=roles[0] if roles else None)


def require_roles(*roles: Role) -> Callable[[Callable[P, R]], Callable[P, R]]:
    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        @wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            require_role(require_account(), *roles)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


__all__ = [
    "AuthzError",
    "jwt_settings",
    "bearer_token",
    "decode_token",
    "resolve_user_id",
    "current_account",
    "refresh_account",
    "require_account",
    "require_role",
    "require_roles",
]
