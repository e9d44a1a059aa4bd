"""Authoritative account state and page routing.

Every decision about where a signed-in user belongs (pick a role, finish the
profile, submit, review) is made from one ``AccountState`` loaded from the
``users`` row (plus whether a submission exists). Callers load it once per
request and never fall back to a cached role: if the row says "no role" the
user chooses one, whatever an older session or browser tab believed.

Routing rules
-------------
``landing_for(state)`` is the home page for a state:

- anonymous                     -> /login
- no role yet                   -> /dashboard (role choice)
- display name/username missing -> /profile-setup
- submitter without submission  -> /submit
- submitter with submission     -> /my-reviews
- reviewer                      -> /review

``guard_page(state, path)`` returns a redirect target for a page request or
``None`` when the page may render.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from .models import Profile, User
from .roles import Role, parse_role

PUBLIC_PATHS: tuple[str, ...] = ("/login", "/signup", "/auth/error")
PROTECTED_PREFIXES: tuple[str, ...] = (
    "/dashboard",
    "/profile",
    "/submit",
    "/review",
    "/my-reviews",
    "/settings",
)
# Pages only meaningful for one role; anyone else is sent back to the dashboard.
ROLE_PAGES: dict[str, Role] = {
    "/submit": "submitter",
    "/my-reviews": "submitter",
    "/review": "reviewer",
}


@dataclass(frozen=True)
class AccountState:
    user_id: int
    email: str
    role: Role | None
    display_name: str | None
    username: str | None
    bio: str | None
    profile_image_url: str | None
    has_submission: bool

    @property
    def has_role(self) -> bool:
        return self.role is not None

    @property
    def profile_complete(self) -> bool:
        return bool(self.display_name) and bool(self.username)

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["has_role"] = self.has_role
        data["profile_complete"] = self.profile_complete
        return data


def state_from_user(user: User, has_submission: bool) -> AccountState:
    return AccountState(
        user_id=user.id,
        email=user.email,
        role=parse_role(user.role),
        display_name=user.display_name or None,
        username=user.username or None,
        bio=user.bio or None,
        profile_image_url=user.profile_image_url or None,
        has_submission=has_submission,
    )


def load_account_state(db: Session, user_id: int | None) -> AccountState | None:
    """Read the account row; None when the id is unknown (deleted user, stale cookie)."""
    if user_id is None:
        return None
    user = db.get(User, user_id)
    if user is None:
        return None
    has_submission = db.query(Profile.id).filter(Profile.user_id == user.id).first() is not None
    return state_from_user(user, has_submission)


def landing_for(state: AccountState | None) -> str:
    if state is None:
        return "/login"
    if not state.has_role:
        return "/dashboard"
    if not state.profile_complete:
        return "/profile-setup"
    if state.role == "submitter":
        return "/my-reviews" if state.has_submission else "/submit"
    return "/review"


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/") or path.startswith(prefix + "-")


def is_public_path(path: str) -> bool:
    if path == "/":
        return True
    return any(_matches(path, p) for p in PUBLIC_PATHS)


def is_protected_path(path: str) -> bool:
    if is_public_path(path):
        return False
    return any(_matches(path, p) for p in PROTECTED_PREFIXES)


def login_url(next_path: str | None = None) -> str:
    if not next_path or next_path == "/login":
        return "/login"
    return "/login?" + urlencode({"redirect": next_path})


def guard_page(state: AccountState | None, path: str) -> str | None:
    if state is None:
        return login_url(path) if is_protected_path(path) else None
    required = ROLE_PAGES.get(path)
    if required is not None and state.role != required:
        return "/dashboard"
    if path == "/profile-setup" and state.profile_complete:
        return "/dashboard"
    return None


def safe_redirect_target(value: str | None) -> str | None:
    """Only same-site relative paths are honoured as post-login targets."""
    if not value or not value.startswith("/") or value.startswith("//"):
        return None
    if "\\" in value:
        return None
    return value


__all__ = [
    "AccountState",
    "PUBLIC_PATHS",
    "PROTECTED_PREFIXES",
    "ROLE_PAGES",
    "state_from_user",
    "load_account_state",
    "landing_for",
    "is_public_path",
    "is_protected_path",
    "login_url",
    "guard_page",
    "safe_redirect_target",
]
