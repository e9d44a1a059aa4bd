"""Domain error system + RFC7807 handler registration."""
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any

from flask import request
from werkzeug.exceptions import HTTPException
from werkzeug.wrappers.response import Response

from .app_authz import AuthzError
from .app_sessions import SessionError
from .http_errors import (
    bad_request,
    conflict,
    forbidden,
    internal_server_error,
    not_found,
    payload_too_large,
    problem,
    too_many_requests,
    unauthorized,
    unprocessable_entity,
)
from .pagination import PaginationError

log = logging.getLogger(__name__)


class DomainError(Exception):
    def __init__(self, status: int, code: str, detail: str | None = None, **extra: Any):
        self.status = status
        self.code = code
        self.detail = detail or code
        self.extra = extra
        super().__init__(self.detail)


class ValidationError(DomainError):
    """422 with a list of ``{"field", "message"}`` entries."""

    def __init__(self, errors: Any, detail: str = "validation_error", **extra: Any):
        if isinstance(errors, str):
            errors = [{"field": None, "message": errors}]
        super().__init__(422, "validation_error", detail, **extra)
        self.errors = errors

    @property
    def first_message(self) -> str:
        try:
            return str(self.errors[0]["message"])
        except (IndexError, KeyError, TypeError):
            return self.detail


class BadRequestError(DomainError):
    def __init__(self, detail: str = "bad_request", **extra: Any):
        super().__init__(400, "bad_request", detail, **extra)


class NotFoundError(DomainError):
    def __init__(self, detail: str = "not_found", **extra: Any):
        super().__init__(404, "not_found", detail, **extra)


class ConflictError(DomainError):
    def __init__(self, detail: str = "conflict", **extra: Any):
        super().__init__(409, "conflict", detail, **extra)


class RateLimitError(DomainError):
    def __init__(self, retry_after: int, detail: str = "rate_limited"):
        super().__init__(429, "rate_limited", detail)
        self.retry_after = retry_after


_STATUS_HELPERS: dict[int, Callable[..., Response]] = {
    400: bad_request,
    401: unauthorized,
    403: forbidden,
    404: not_found,
    409: conflict,
    413: payload_too_large,
}


def _log_problem(resp: Response) -> None:
    payload = resp.get_json(silent=True) or {}
    log.info(
        "problem status=%s detail=%s path=%s",
        payload.get("status"),
        payload.get("detail"),
        request.path,
    )


def register_error_handlers(app: Any) -> None:
    @app.errorhandler(SessionError)
    def _h_session(err: SessionError) -> Response:
        resp = unauthorized(detail=str(err) or "authentication_required")
        _log_problem(resp)
        return resp

    @app.errorhandler(AuthzError)
    def _h_authz(err: AuthzError) -> Response:
        extra = {"required_role": err.required} if err.required else {}
        resp = forbidden(detail=str(err) or "forbidden", **extra)
        _log_problem(resp)
        return resp

    @app.errorhandler(DomainError)
    def _h_domain(err: DomainError) -> Response:
        if isinstance(err, ValidationError):
            resp = unprocessable_entity(err.errors, detail=err.detail, **err.extra)
        elif isinstance(err, RateLimitError):
            resp = too_many_requests(detail=err.detail, retry_after=err.retry_after)
        else:
            helper = _STATUS_HELPERS.get(err.status, bad_request)
            resp = helper(detail=err.detail, **err.extra)
        _log_problem(resp)
        return resp

    @app.errorhandler(PaginationError)
    def _h_pagination(err: PaginationError) -> Response:
        resp = bad_request(detail=str(err) or "bad_request")
        _log_problem(resp)
        return resp

    @app.errorhandler(HTTPException)
    def _h_http(ex: HTTPException) -> Response:
        status = ex.code or 500
        helper = _STATUS_HELPERS.get(status)
        if helper:
            resp = helper(detail=ex.description)
        elif status >= 500:
            resp = internal_server_error()
        else:
            resp = problem(status, "about:blank", ex.name, str(ex.description))
        _log_problem(resp)
        return resp

    @app.errorhandler(Exception)
    def _h_exception(ex: Exception) -> Response:
        incident_id = str(uuid.uuid4())
        app.logger.exception("Unhandled exception incident_id=%s path=%s", incident_id, request.path)
        return internal_server_error(incident_id=incident_id)


__all__ = [
    "DomainError",
    "ValidationError",
    "BadRequestError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "register_error_handlers",
]
