"""Flask glue shared by the controllers: bearer auth and JSON error mapping."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Callable, Optional

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: tuple[tuple[type, int], ...] = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidTransitionError, 409),
    (ConflictError, 409),
)


def status_for(error: DomainError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(error, cls):
            return status
    return 400


def error_body(error: DomainError) -> dict:
    body = {"error": str(error), "code": error.code}
    if isinstance(error, ValidationError):
        body["violations"] = [v.to_dict() for v in error.violations]
    return body


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = status_for(e)
        if status == 403:
            actor = getattr(g, "actor", None)
            logger.warning(
                "Forbidden %s %s for user %s: %s",
                request.method,
                request.path,
                actor.user_id if actor else "-",
                e,
            )
        return jsonify(error_body(e)), status

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"error": e.description, "code": e.name.lower().replace(" ", "_")}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error", "code": "internal_error"}), 500


def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def make_login_required(authenticate: Callable) -> Callable:
    """Build a decorator that resolves the bearer token into ``g.actor``/``g.current_user``."""

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor, user = authenticate(bearer_token())
            g.actor = actor
            g.current_user = user
            return view(*args, **kwargs)

        return wrapper

    return login_required


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def query_int(name: str, default: int) -> int:
    raw: Optional[str] = request.args.get(name)
    try:
        return int(raw) if raw not in (None, "") else default
    except ValueError:
        raise ValidationError.single(name, "invalid_field", f"{name} must be an integer")
