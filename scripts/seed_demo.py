"""Seed demo accounts: one submitter and one reviewer with finished profiles.

Run: python scripts/seed_demo.py

Creates rows only if they are absent. Safe for repeats.
"""
from __future__ import annotations

import sys
from pathlib import Path

# Ensure project root (parent of scripts/) is on sys.path when run as a file.
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from vett.account_service import complete_profile, set_role, signup
from vett.app_factory import create_app
from vett.db import create_all, get_session
from vett.models import User
from vett.storage import get_storage

DEMO_PASSWORD = "demo-pass"
DEMO_ACCOUNTS = [
    ("submitter@example.com", "submitter", "Sam Submitter", "sam_submits"),
    ("reviewer@example.com", "reviewer", "Riley Reviewer", "riley_reviews"),
]


def main() -> None:
    app = create_app()
    with app.app_context():
        create_all()
        db = get_session()
        for email, role, display_name, username in DEMO_ACCOUNTS:
            user = db.query(User).filter(User.email == email).first()
            if user is None:
                user = signup(db, email, DEMO_PASSWORD)
            set_role(db, user.id, role)
            if not user.username:
                complete_profile(db, user.id, display_name, username, get_storage())
            print(f"{role:<10} {email} / {DEMO_PASSWORD}")
        print("Demo seed complete. Visit http://127.0.0.1:5000/login (after starting app)")


if __name__ == "__main__":
    main()
