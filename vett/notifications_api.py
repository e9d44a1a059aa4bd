from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from .app_authz import require_account
from .db import get_session
from .errors import BadRequestError
from .models import is_valid_id
from .notification_service import mark_read, serialize_notification, unread_for

bp = Blueprint("notifications_api", __name__, url_prefix="/api/notifications")


@bp.get("")
def list_unread():
    state = require_account()
    items = unread_for(get_session(), state.user_id)
    return jsonify(
        {
            "ok": True,
            "notifications": [serialize_notification(n) for n in items],
            "unread_count": len(items),
            # Clients poll no faster than this
            "poll_after_seconds": current_app.config.get("NOTIFICATION_POLL_SECONDS", 30),
        }
    )


@bp.post("/read")
def mark_selected_read():
    state = require_account()
    data = request.get_json(silent=True) or {}
    ids = data.get("notification_ids")
    if (
        not isinstance(ids, list)
        or not ids
        or not all(is_valid_id(i) for i in ids)
    ):
        raise BadRequestError("invalid notification ids")
    updated = mark_read(get_session(), state.user_id, ids)
    return jsonify({"ok": True, "updated": updated})


@bp.post("/read-all")
def mark_all_read():
    state = require_account()
    updated = mark_read(get_session(), state.user_id)
    return jsonify({"ok": True, "updated": updated})
