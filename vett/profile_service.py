"""Profile submissions and the reviewer queue."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Literal

from sqlalchemy import select
from sqlalchemy.orm import Session
from werkzeug.datastructures import FileStorage

from .errors import NotFoundError, ValidationError
from .models import Profile, Review, User, is_valid_id
from .storage import ImageStorage, is_present

log = logging.getLogger(__name__)

MAX_PROFILE_TEXT_LENGTH = 5000


def serialize_profile(profile: Profile, owner: User | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": profile.id,
        "user_id": profile.user_id,
        "profile_text": profile.profile_text or "",
        "images": list(profile.images or []),
        "created_at": profile.created_at.isoformat() if profile.created_at else None,
        "updated_at": profile.updated_at.isoformat() if profile.updated_at else None,
    }
    if owner is not None:
        data["owner"] = {"display_name": owner.display_name, "username": owner.username}
    return data


def submit_profile(
    db: Session,
    user_id: int,
    profile_text: str | None,
    images: list[FileStorage],
    storage: ImageStorage,
    max_images: int = 6,
) -> tuple[Profile, Literal["created", "updated"]]:
    """Create the user's single profile or replace its text and photos.

    Images past ``max_images`` are ignored. Every image is validated before
    any is written, so a bad file never leaves a half-stored submission.
    """
    text = (profile_text or "").strip()
    if len(text) > MAX_PROFILE_TEXT_LENGTH:
        raise ValidationError([{"field": "profile_text", "message": f"Profile text must be at most {MAX_PROFILE_TEXT_LENGTH} characters"}])
    files = [f for f in images if is_present(f)][:max_images]
    if not files:
        raise ValidationError([{"field": "images", "message": "At least one image is required"}])
    for i, f in enumerate(files):
        storage.validate(f, field=f"image{i}")
    urls = [storage.save(f, user_id, i, field=f"image{i}") for i, f in enumerate(files)]

    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    replaced: list[str] = []
    if profile is None:
        profile = Profile(user_id=user_id, profile_text=text, images=urls)
        db.add(profile)
        operation: Literal["created", "updated"] = "created"
    else:
        replaced = list(profile.images or [])
        profile.profile_text = text
        profile.images = urls
        profile.updated_at = datetime.now(UTC)
        operation = "updated"
    db.commit()
    for url in replaced:
        storage.delete(url)
    log.info("Profile %s profile_id=%s user_id=%s images=%d", operation, profile.id, user_id, len(urls))
    return profile, operation


def get_own_profile(db: Session, user_id: int) -> Profile:
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if profile is None:
        raise NotFoundError("no_profile")
    return profile


def get_profile(db: Session, profile_id: int) -> tuple[Profile, User | None]:
    profile = db.get(Profile, profile_id) if is_valid_id(profile_id) else None
    if profile is None:
        raise NotFoundError("profile_not_found")
    return profile, db.get(User, profile.user_id)


def next_profile_for_review(db: Session, reviewer_id: int) -> tuple[Profile, User | None] | None:
    """Oldest profile the reviewer neither owns nor has already reviewed."""
    reviewed = select(Review.profile_id).where(Review.reviewer_id == reviewer_id)
    profile = (
        db.query(Profile)
        .filter(Profile.user_id != reviewer_id, Profile.id.not_in(reviewed))
        .order_by(Profile.created_at.asc(), Profile.id.asc())
        .first()
    )
    if profile is None:
        return None
    return profile, db.get(User, profile.user_id)


__all__ = [
    "serialize_profile",
    "submit_profile",
    "get_own_profile",
    "get_profile",
    "next_profile_for_review",
]
