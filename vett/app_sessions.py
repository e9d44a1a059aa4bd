"""Session management helpers.

The cookie session only remembers *who* is signed in. Role and profile
completion are always read from the database (see account_state), so the
session never holds a copy that could drift from the users row.
"""
from __future__ import annotations

from flask import session as flask_session


def persist_login(sess, user_id: int) -> None:
    """Persist minimal auth session state. (Thin wrapper to allow future swap)."""
    sess.clear()
    sess["user_id"] = int(user_id)
    sess.permanent = True


def clear_login(sess=flask_session) -> None:
    sess.pop("user_id", None)


def get_session_user_id(sess=flask_session) -> int | None:
    raw = sess.get("user_id")
    if not raw:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


class SessionError(Exception):
    """Signals a 401 unauthorized due to missing/invalid session."""
    def __init__(self, message: str = "authentication required"):
        super().__init__(message)


__all__ = [
    "persist_login",
    "clear_login",
    "get_session_user_id",
    "SessionError",
]
