"""Reviews: submission rules, owner-facing listing and rating analytics."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .app_authz import AuthzError
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Profile, Review, User, is_valid_id
from .notification_service import notify
from .pagination import PageRequest

log = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MIN_FEEDBACK_LENGTH = 20
MAX_FEEDBACK_LENGTH = 5000
ANONYMOUS_REVIEWER = "Anonymous Reviewer"


def _parse_rating(raw: object) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None


def validate_review(rating: object, feedback: object) -> tuple[int, str]:
    errors = []
    parsed = _parse_rating(rating)
    if parsed is None or not MIN_RATING <= parsed <= MAX_RATING:
        errors.append({"field": "rating", "message": f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}"})
    text = feedback.strip() if isinstance(feedback, str) else ""
    if not text:
        errors.append({"field": "feedback", "message": "Please provide some feedback"})
    elif len(text) < MIN_FEEDBACK_LENGTH:
        errors.append({"field": "feedback", "message": f"Feedback should be at least {MIN_FEEDBACK_LENGTH} characters"})
    elif len(text) > MAX_FEEDBACK_LENGTH:
        errors.append({"field": "feedback", "message": f"Feedback must be at most {MAX_FEEDBACK_LENGTH} characters"})
    if errors:
        raise ValidationError(errors)
    return parsed, text  # type: ignore[return-value]


def serialize_review(review: Review) -> dict[str, Any]:
    return {
        "id": review.id,
        "profile_id": review.profile_id,
        "reviewer_id": review.reviewer_id,
        "reviewer_name": review.reviewer_name,
        "rating": review.rating,
        "feedback": review.feedback,
        "created_at": review.created_at.isoformat() if review.created_at else None,
    }


def submit_review(db: Session, reviewer_id: int, profile_id: object, rating: object, feedback: object) -> Review:
    rating_v, feedback_v = validate_review(rating, feedback)
    if isinstance(profile_id, bool) or not isinstance(profile_id, int):
        try:
            profile_id = int(str(profile_id))
        except ValueError:
            raise ValidationError([{"field": "profile_id", "message": "Profile ID is required"}]) from None
    profile = db.get(Profile, profile_id) if is_valid_id(profile_id) else None
    if profile is None:
        raise NotFoundError("profile_not_found")
    if profile.user_id == reviewer_id:
        raise AuthzError("cannot review own profile")
    exists = (
        db.query(Review.id)
        .filter(Review.profile_id == profile.id, Review.reviewer_id == reviewer_id)
        .first()
    )
    if exists is not None:
        raise ConflictError("already_reviewed")
    reviewer = db.get(User, reviewer_id)
    review = Review(
        profile_id=profile.id,
        reviewer_id=reviewer_id,
        reviewer_name=(reviewer.display_name if reviewer else None) or ANONYMOUS_REVIEWER,
        rating=rating_v,
        feedback=feedback_v,
    )
    db.add(review)
    try:
        db.flush()
    except IntegrityError:
        # concurrent submit from a second tab
        db.rollback()
        raise ConflictError("already_reviewed") from None
    notify(
        db,
        user_id=profile.user_id,
        type_="new_review",
        message=f"You received a new review with rating: {rating_v}/{MAX_RATING}",
        related_id=review.id,
    )
    db.commit()
    log.info("Review stored review_id=%s profile_id=%s rating=%s", review.id, profile.id, rating_v)
    return review


def compute_analytics(ratings: Iterable[int]) -> dict[str, Any]:
    values = list(ratings)
    distribution = {str(star): 0 for star in range(MIN_RATING, MAX_RATING + 1)}
    for r in values:
        if str(r) in distribution:
            distribution[str(r)] += 1
    count = len(values)
    average = round(sum(values) / count, 1) if count else 0.0
    return {
        "review_count": count,
        "average_rating": average,
        "rating_distribution": distribution,
    }


def reviews_for_owner(db: Session, user_id: int, page_req: PageRequest) -> tuple[Profile, list[Review], int, dict[str, Any]]:
    """Reviews of the user's profile, newest first, plus analytics over all of them."""
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if profile is None:
        raise NotFoundError("no_profile")
    q = db.query(Review).filter(Review.profile_id == profile.id)
    ratings = [r for (r,) in q.with_entities(Review.rating).all()]
    ordered = q.order_by(Review.created_at.desc(), Review.id.desc())
    start = (page_req["page"] - 1) * page_req["size"]
    items = ordered.offset(start).limit(page_req["size"]).all()
    return profile, items, len(ratings), compute_analytics(ratings)


__all__ = [
    "MIN_FEEDBACK_LENGTH",
    "validate_review",
    "serialize_review",
    "submit_review",
    "compute_analytics",
    "reviews_for_owner",
]
