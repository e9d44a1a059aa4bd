"""Profile submission API and the reviewer queue."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from .app_authz import require_roles, require_account
from .db import get_session
from .errors import NotFoundError
from .profile_service import (
    get_own_profile,
    get_profile,
    next_profile_for_review,
    serialize_profile,
    submit_profile,
)
from .storage import get_storage, is_present

bp = Blueprint("profiles_api", __name__, url_prefix="/api/profiles")


def uploaded_images(files, limit: int) -> list:
    """Collect image0..imageN fields (form layout of the upload page) or a repeated ``images`` field."""
    numbered = [files.get(f"image{i}") for i in range(limit)]
    picked = [f for f in numbered if is_present(f)]
    return picked or files.getlist("images")


@bp.post("")
@require_roles("submitter")
def create_or_replace_profile():
    state = require_account()
    limit = int(current_app.config.get("MAX_PROFILE_IMAGES", 6))
    profile, operation = submit_profile(
        get_session(),
        state.user_id,
        request.form.get("profile_text"),
        uploaded_images(request.files, limit),
        get_storage(),
        max_images=limit,
    )
    status = 201 if operation == "created" else 200
    return jsonify({"ok": True, "profile_id": profile.id, "image_urls": list(profile.images), "operation": operation}), status


@bp.get("/mine")
def my_profile():
    state = require_account()
    profile = get_own_profile(get_session(), state.user_id)
    return jsonify({"ok": True, "profile": serialize_profile(profile)})


@bp.get("/next")
@require_roles("reviewer")
def next_to_review():
    state = require_account()
    found = next_profile_for_review(get_session(), state.user_id)
    if found is None:
        raise NotFoundError("no_profiles_to_review")
    profile, owner = found
    return jsonify({"ok": True, "profile": serialize_profile(profile, owner)})


@bp.get("/<int:profile_id>")
def show_profile(profile_id: int):
    require_account()
    profile, owner = get_profile(get_session(), profile_id)
    return jsonify({"ok": True, "profile": serialize_profile(profile, owner)})
