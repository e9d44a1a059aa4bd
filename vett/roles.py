"""Account roles.

A user picks exactly one role after signing up; until then the role is None.

Role: the two labels stored on users.role
ROLES: iteration order used by forms and validation messages
"""

from __future__ import annotations

from typing import Literal, cast

Role = Literal["submitter", "reviewer"]

ROLES: tuple[Role, Role] = ("submitter", "reviewer")


def is_role(value: object) -> bool:
    return isinstance(value, str) and value in ROLES


def parse_role(value: object) -> Role | None:
    """Return the role when value names one, else None."""
    if is_role(value):
        return cast(Role, value)
    return None


__all__ = [
    "Role",
    "ROLES",
    "is_role",
    "parse_role",
]
