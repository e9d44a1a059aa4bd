from __future__ import annotations

from flask import Blueprint, jsonify, request

from .app_authz import require_account, require_roles
from .db import get_session
from .pagination import make_page_response, parse_page_params
from .review_service import reviews_for_owner, serialize_review, submit_review

bp = Blueprint("reviews_api", __name__, url_prefix="/api/reviews")


@bp.post("")
@require_roles("reviewer")
def create_review():
    state = require_account()
    data = request.get_json(silent=True) or {}
    review = submit_review(
        get_session(),
        state.user_id,
        data.get("profile_id"),
        data.get("rating"),
        data.get("feedback"),
    )
    return jsonify({"ok": True, "review_id": review.id, "review": serialize_review(review)}), 201


@bp.get("/mine")
def my_reviews():
    """Reviews received by the caller's own profile (any role may have submitted one)."""
    state = require_account()
    page_req = parse_page_params(request.args)
    profile, items, total, analytics = reviews_for_owner(get_session(), state.user_id, page_req)
    resp = make_page_response([serialize_review(r) for r in items], page_req, total)
    return jsonify({**resp, "profile_id": profile.id, "analytics": analytics})
