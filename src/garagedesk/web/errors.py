from __future__ import annotations

import logging

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ..db import DbError
from ..errors import GarageError, ValidationError
from .context import get_config
from .responses import error_body

log = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(GarageError)
    def garage_error(error: GarageError):
        errors = error.errors if isinstance(error, ValidationError) else None
        return jsonify(error_body(error.message, errors)), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        if error.code == 404:
            message = f"Route not found: {request.path}"
        else:
            message = error.description or error.name
        return jsonify(error_body(message)), error.code

    @app.errorhandler(DbError)
    def db_error(error: DbError):
        log.error("Database error on %s %s: %s", request.method, request.path, error)
        return _internal(error)

    @app.errorhandler(Exception)
    def unexpected_error(error: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.path)
        return _internal(error)


def _internal(error: Exception):
    body = error_body("Internal server error")
    if get_config().is_development:
        body["message"] = str(error) or "Internal server error"
        body["error"] = type(error).__name__
    return jsonify(body), 500
