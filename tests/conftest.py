import io
import os
import sys

import pytest

# Path setup before any project imports to satisfy E402
ROOT = os.path.dirname(__file__)
PARENT = os.path.abspath(os.path.join(ROOT, ".."))
if PARENT not in sys.path:  # pragma: no cover - environment dependent
    sys.path.insert(0, PARENT)

PASSWORD = "secret123"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


def _lazy_imports():  # isolate heavy imports & satisfy lint ordering
    from vett.app_factory import create_app  # noqa: E402
    from vett.db import create_all  # noqa: E402

    return create_app, create_all


def image_file(name: str = "photo.png", mimetype: str = "image/png", data: bytes = PNG_BYTES):
    """Multipart file tuple for the Flask test client."""
    return (io.BytesIO(data), name, mimetype)


def username_for(email: str) -> str:
    return email.split("@", 1)[0].replace(".", "_").replace("-", "_")


@pytest.fixture
def make_app(tmp_path):
    create_app, create_all = _lazy_imports()

    def _make(extra: dict | None = None):
        cfg = {
            "TESTING": True,
            "SECRET_KEY": "test",
            "database_url": f"sqlite:///{tmp_path / 'test_app.db'}",
            "FORCE_DB_REINIT": True,
            "CSRF_ENABLED": False,
            "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        }
        cfg.update(extra or {})
        app = create_app(cfg)
        with app.app_context():
            create_all()
        return app

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create an account directly through the services; returns the user id."""

    def _make(email: str, *, role: str | None = None, complete: bool = True, password: str = PASSWORD) -> int:
        from vett.account_service import set_role, signup
        from vett.db import get_session
        from vett.models import User

        with app.app_context():
            db = get_session()
            user = signup(db, email, password)
            if role:
                set_role(db, user.id, role)
            if complete:
                row = db.get(User, user.id)
                row.display_name = username_for(email).replace("_", " ").title()
                row.username = username_for(email)
                db.commit()
            return user.id

    return _make


@pytest.fixture
def login_as(app, make_user):
    """Create a user and return a test client holding its session cookie."""

    def _login(email: str, *, role: str | None = None, complete: bool = True):
        make_user(email, role=role, complete=complete)
        c = app.test_client()
        r = c.post("/auth/login", json={"email": email, "password": PASSWORD})
        assert r.status_code == 200, r.get_json()
        return c

    return _login


@pytest.fixture
def submit_profile_for(app):
    """Post a one-photo submission from an already signed-in submitter client."""

    def _submit(c, text: str = "Outdoorsy, loves dogs and bad puns."):
        r = c.post(
            "/api/profiles",
            data={"profile_text": text, "image0": image_file()},
            content_type="multipart/form-data",
        )
        assert r.status_code in (200, 201), r.get_json()
        return r.get_json()["profile_id"]

    return _submit
