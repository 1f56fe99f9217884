"""Error taxonomy for the API and the Flask handlers that render it."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException


class TrackifyError(Exception):
    """Base class for failures that map onto an HTTP response."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str, error: Optional[str] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(TrackifyError):
    status_code = 400
    error = "validation_error"


class AuthError(TrackifyError):
    status_code = 401
    error = "invalid_credentials"


class ForbiddenError(TrackifyError):
    status_code = 403
    error = "forbidden"


class NotFoundError(TrackifyError):
    status_code = 404
    error = "not_found"


class ConflictError(TrackifyError):
    status_code = 409
    error = "conflict"


class ExpiredError(TrackifyError):
    status_code = 400
    error = "code_expired"


class AlreadyUsedError(TrackifyError):
    status_code = 400
    error = "code_already_used"


class SamePasswordError(TrackifyError):
    status_code = 400
    error = "same_password"


class ConfigError(TrackifyError):
    status_code = 500
    error = "email_config_missing"


class DeliveryError(TrackifyError):
    status_code = 500
    error = "email_delivery_failed"


def error_response(exc: TrackifyError):
    """Render a TrackifyError as a JSON response tuple."""
    return jsonify(exc.to_dict()), exc.status_code


def register_error_handlers(app: Flask) -> None:
    """Attach JSON error handlers for domain, HTTP and unexpected errors."""

    @app.errorhandler(TrackifyError)
    def _handle_trackify_error(exc: TrackifyError):
        if exc.status_code >= 500:
            app.logger.error("%s: %s", exc.error, exc.message)
        return error_response(exc)

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        slug = (exc.name or "error").lower().replace(" ", "_")
        return jsonify(error=slug, message=exc.description), exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        app.logger.exception("Unhandled error while serving request")
        return jsonify(error="internal_error", message="Internal server error."), 500
