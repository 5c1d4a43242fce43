"""JSON envelope, error mapping and request helpers shared by controllers."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..auth.policy import Actor, actor_from_session
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .datetime_utils import parse_iso_date, resolve_range
from .validators import require_positive_int

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidStateError, 422),
    (StorageError, 503),
]


def http_status_for(exc: DomainError) -> int:
    for kind, code in STATUS_BY_ERROR:
        if isinstance(exc, kind):
            return code
    return 500


def ok(data: Any = None, status: int = 200):
    return jsonify({"success": True, "data": data}), status


def fail(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = http_status_for(e)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, e)
            message = str(e) if isinstance(e, StorageError) else "Internal server error"
            return fail(message, status)
        return fail(str(e), status)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return fail(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.path)
        return fail("Internal server error", 500)


def current_actor() -> Actor | None:
    return actor_from_session(session)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def optional_int(value: Any, field_name: str) -> int | None:
    if value in (None, ""):
        return None
    return require_positive_int(value, field_name)


def optional_date(value: Any) -> date | None:
    if value in (None, ""):
        return None
    return parse_iso_date(str(value))


def date_range_args(*, today: date, required: bool = False) -> tuple[date, date]:
    return resolve_range(
        request.args.get("startDate"),
        request.args.get("endDate"),
        today=today,
        required=required,
    )
