"""Account lifecycle: signup, credential check, role choice, profile details."""

from __future__ import annotations

import logging
import re
from typing import Literal

from sqlalchemy.orm import Session
from werkzeug.datastructures import FileStorage
from werkzeug.security import check_password_hash, generate_password_hash

from .errors import ConflictError, NotFoundError, ValidationError
from .models import User
from .roles import ROLES, Role, parse_role
from .storage import ImageStorage, is_present

log = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MIN_DISPLAY_NAME_LENGTH = 2
MIN_USERNAME_LENGTH = 3
MAX_BIO_LENGTH = 1000
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("user_not_found")
    return user


def signup(db: Session, email: str | None, password: str | None, confirm: str | None = None) -> User:
    email_n = normalize_email(email)
    errors = []
    if not EMAIL_RE.match(email_n):
        errors.append({"field": "email", "message": "A valid email address is required"})
    if len(password or "") < MIN_PASSWORD_LENGTH:
        errors.append({"field": "password", "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"})
    elif confirm is not None and confirm != password:
        errors.append({"field": "confirm_password", "message": "Passwords do not match"})
    if errors:
        raise ValidationError(errors)
    if db.query(User.id).filter(User.email == email_n).first() is not None:
        raise ConflictError("email_taken")
    user = User(email=email_n, password_hash=generate_password_hash(password or ""), role=None)
    db.add(user)
    db.commit()
    log.info("Account created user_id=%s", user.id)
    return user


def authenticate(db: Session, email: str | None, password: str | None) -> User | None:
    email_n = normalize_email(email)
    if not email_n or not password:
        return None
    user = db.query(User).filter(User.email == email_n).first()
    if user is None or not check_password_hash(user.password_hash, password):
        return None
    return user


def set_role(db: Session, user_id: int, role: object) -> tuple[Role, Literal["updated", "unchanged"]]:
    parsed = parse_role(role)
    if parsed is None:
        raise ValidationError([{"field": "role", "message": f"Role must be one of: {', '.join(ROLES)}"}])
    user = _get_user(db, user_id)
    if user.role == parsed:
        return parsed, "unchanged"
    previous = user.role
    user.role = parsed
    db.commit()
    log.info("Role set user_id=%s %s -> %s", user_id, previous, parsed)
    return parsed, "updated"


def _require_text(fields: dict[str, object]) -> None:
    """JSON callers can send any type; only strings (or nothing) are accepted."""
    errors = [
        {"field": name, "message": f"{name.replace('_', ' ').capitalize()} must be a string"}
        for name, value in fields.items()
        if value is not None and not isinstance(value, str)
    ]
    if errors:
        raise ValidationError(errors)


def validate_profile_fields(display_name: str, username: str) -> None:
    errors = []
    if not display_name:
        errors.append({"field": "display_name", "message": "Display name is required"})
    elif len(display_name) < MIN_DISPLAY_NAME_LENGTH:
        errors.append({"field": "display_name", "message": f"Display name must be at least {MIN_DISPLAY_NAME_LENGTH} characters"})
    if not username:
        errors.append({"field": "username", "message": "Username is required"})
    elif len(username) < MIN_USERNAME_LENGTH:
        errors.append({"field": "username", "message": f"Username must be at least {MIN_USERNAME_LENGTH} characters"})
    elif not USERNAME_RE.match(username):
        errors.append({"field": "username", "message": "Username can only contain letters, numbers, and underscores"})
    if errors:
        raise ValidationError(errors)


def complete_profile(
    db: Session,
    user_id: int,
    display_name: str | None,
    username: str | None,
    storage: ImageStorage,
    avatar: FileStorage | None = None,
) -> User:
    """Profile setup step: display name, unique username and an optional avatar."""
    _require_text({"display_name": display_name, "username": username})
    display_name = (display_name or "").strip()
    username = (username or "").strip()
    validate_profile_fields(display_name, username)
    user = _get_user(db, user_id)
    taken = (
        db.query(User.id)
        .filter(User.username == username, User.id != user_id)
        .first()
    )
    if taken is not None:
        raise ConflictError("username_taken")
    if is_present(avatar):
        new_url = storage.save(avatar, user_id, field="avatar")  # type: ignore[arg-type]
        storage.delete(user.profile_image_url)
        user.profile_image_url = new_url
    user.display_name = display_name
    user.username = username
    db.commit()
    log.info("Profile setup saved user_id=%s", user_id)
    return user


def update_settings(
    db: Session,
    user_id: int,
    *,
    display_name: str | None = None,
    bio: str | None = None,
) -> User:
    _require_text({"display_name": display_name, "bio": bio})
    user = _get_user(db, user_id)
    errors = []
    if display_name is not None:
        display_name = display_name.strip()
        if len(display_name) < MIN_DISPLAY_NAME_LENGTH:
            errors.append({"field": "display_name", "message": f"Display name must be at least {MIN_DISPLAY_NAME_LENGTH} characters"})
    if bio is not None:
        bio = bio.strip()
        if len(bio) > MAX_BIO_LENGTH:
            errors.append({"field": "bio", "message": f"Bio must be at most {MAX_BIO_LENGTH} characters"})
    if errors:
        raise ValidationError(errors)
    if display_name is not None:
        user.display_name = display_name
    if bio is not None:
        user.bio = bio or None
    db.commit()
    return user


__all__ = [
    "normalize_email",
    "signup",
    "authenticate",
    "set_role",
    "validate_profile_fields",
    "complete_profile",
    "update_settings",
]
