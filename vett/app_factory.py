"""Flask application factory.

Provides:
 - App factory with configuration override
 - DB engine initialization + scoped session teardown
 - Request id propagation (X-Request-Id) and one structured log line per request
 - RFC7807 problem+json error handlers
 - Blueprint registration (auth, account, profiles, reviews, notifications,
   uploads, health, HTML pages; debug endpoints behind DEBUG_ENDPOINTS)
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Any

from dotenv import load_dotenv
from flask import Flask, g, request
from werkzeug.wrappers.response import Response

from .account_api import bp as account_api_bp
from .auth import bp as auth_bp
from .config import Config
from .db import init_engine, remove_session
from .debug_api import bp as debug_api_bp
from .errors import register_error_handlers
from .health_api import bp as health_bp
from .logging_setup import configure_logging
from .notifications_api import bp as notifications_api_bp
from .profiles_api import bp as profiles_api_bp
from .reviews_api import bp as reviews_api_bp
from .security import init_security
from .storage import bp as uploads_bp, init_storage
from .ui import bp as ui_bp

log = logging.getLogger(__name__)


def create_app(config_override: dict[str, Any] | None = None) -> Flask:
    # Load .env early so debug reloads keep local settings
    load_dotenv()
    app = Flask(__name__, static_url_path="/static")
    # --- Configuration ---
    cfg = Config.from_env()
    if config_override:
        known = {k: v for k, v in config_override.items() if hasattr(cfg, k)}
        if known:
            cfg.override(known)
    # Resolve stable absolute dev DB path when DATABASE_URL not provided
    if not os.getenv("DATABASE_URL") and cfg.database_url == "sqlite:///dev.db":
        os.makedirs(app.instance_path, exist_ok=True)
        cfg.database_url = f"sqlite:///{os.path.join(app.instance_path, 'dev.db')}"
    app.config.update(cfg.to_flask_dict())
    if config_override:
        for k, v in config_override.items():  # also allow direct Flask config keys
            if k.isupper():
                app.config[k] = v
    db_url = app.config.get("SQLALCHEMY_DATABASE_URI") or cfg.database_url

    configure_logging(app)

    # --- DB setup ---
    init_engine(db_url, force=bool(app.config.get("FORCE_DB_REINIT")))
    log.info("DB_URL=%s", db_url)

    @app.teardown_appcontext
    def _shutdown_session(exc: BaseException | None = None) -> None:
        remove_session()

    # --- Request id + timing ---
    @app.before_request
    def _before_req() -> None:
        g._t0 = time.perf_counter()
        g.request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())

    @app.after_request
    def _after_req(resp: Response) -> Response:
        dur_ms = int((time.perf_counter() - getattr(g, "_t0", time.perf_counter())) * 1000)
        rid = getattr(g, "request_id", None) or str(uuid.uuid4())
        resp.headers["X-Request-Id"] = rid
        resp.headers["X-Request-Duration-ms"] = str(dur_ms)
        if "Cache-Control" not in resp.headers and not request.path.startswith(("/static/", "/uploads/")):
            resp.headers["Cache-Control"] = "no-store"
        log.info(
            {
                "request_id": rid,
                "method": request.method,
                "path": request.path,
                "status": resp.status_code,
                "duration_ms": dur_ms,
            }
        )
        return resp

    # --- Security middleware (CSRF, headers) ---
    init_security(app)

    # --- Upload storage ---
    init_storage(app)

    # --- Errors ---
    register_error_handlers(app)

    # --- Blueprints ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(account_api_bp)
    app.register_blueprint(profiles_api_bp)
    app.register_blueprint(reviews_api_bp)
    app.register_blueprint(notifications_api_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(health_bp)
    app.register_blueprint(ui_bp)
    if app.config.get("DEBUG_ENDPOINTS"):
        app.register_blueprint(debug_api_bp)
        app.logger.warning("Debug endpoints enabled under /debug")

    @app.context_processor
    def _inject_poll_interval() -> dict[str, Any]:
        return {"notification_poll_seconds": app.config.get("NOTIFICATION_POLL_SECONDS", 30)}

    return app


__all__ = ["create_app"]
