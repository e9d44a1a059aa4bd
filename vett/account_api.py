"""Account API: role choice, profile setup and settings for the signed-in user.

A user can only ever act on their own row; the id always comes from the
authenticated identity, never from the request body.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from .account_service import complete_profile, set_role, update_settings
from .account_state import landing_for
from .app_authz import refresh_account, require_account
from .db import get_session
from .storage import get_storage

bp = Blueprint("account_api", __name__, url_prefix="/api/account")


def _payload():
    state = refresh_account()
    return {"ok": True, "account": state.to_dict() if state else None, "landing": landing_for(state)}


@bp.get("")
def get_account():
    require_account()
    return jsonify(_payload())


@bp.post("/role")
def choose_role():
    state = require_account()
    data = request.get_json(silent=True) or request.form
    role, operation = set_role(get_session(), state.user_id, data.get("role"))
    body = _payload()
    body.update({"role": role, "operation": operation})
    return jsonify(body)


@bp.post("/profile")
def setup_profile():
    state = require_account()
    data = request.get_json(silent=True) or request.form
    complete_profile(
        get_session(),
        state.user_id,
        data.get("display_name"),
        data.get("username"),
        get_storage(),
        avatar=request.files.get("avatar"),
    )
    return jsonify(_payload())


@bp.patch("/settings")
def update_account_settings():
    state = require_account()
    data = request.get_json(silent=True) or {}
    update_settings(
        get_session(),
        state.user_id,
        display_name=data.get("display_name"),
        bio=data.get("bio"),
    )
    return jsonify(_payload())
