"""Logging wiring + support log ring buffer.

Every record handled inside a request carries ``request_id`` so log lines can be
matched to the X-Request-Id returned to the client. WARN+ records are also kept
in an in-memory deque (``LOG_BUFFER``) exposed by the debug endpoints for quick
troubleshooting without external log aggregation.
"""

from __future__ import annotations

import collections
import logging
import time

from flask import Flask, g, has_request_context, request

LOG_BUFFER: collections.deque[dict] = collections.deque(maxlen=500)
LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.request_id = getattr(g, "request_id", "-")
        else:
            record.request_id = "-"
        return True


class SupportLogHandler(logging.Handler):  # pragma: no cover - simple container
    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        in_request = has_request_context()
        LOG_BUFFER.append(
            {
                "ts": time.time(),
                "level": record.levelname,
                "msg": self.format(record),
                "request_id": getattr(g, "request_id", "-") if in_request else "-",
                "path": request.path if in_request else "-",
            }
        )


def install_support_log_handler() -> None:
    root = logging.getLogger()
    # Avoid duplicate attachment if reloaded
    if any(isinstance(h, SupportLogHandler) for h in root.handlers):
        return
    h = SupportLogHandler(level=logging.WARNING)
    h.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(h)


def configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    vett_log = logging.getLogger("vett")
    vett_log.setLevel(level)
    app.logger.setLevel(level)
    if not any(isinstance(f, RequestIdFilter) for f in app.logger.filters):
        app.logger.addFilter(RequestIdFilter())
    if not vett_log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RequestIdFilter())
        vett_log.addHandler(handler)
    install_support_log_handler()


__all__ = ["LOG_BUFFER", "RequestIdFilter", "configure_logging", "install_support_log_handler"]
