"""Error taxonomy shared by services and blueprints.

Services raise these; ``register_error_handlers`` turns them into
``{"error": ...}`` JSON responses. Anything else becomes a generic 500.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException


logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    pass


class PortalError(Exception):
    status = 500

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class ValidationFailure(PortalError):
    status = 400


class AuthenticationFailure(PortalError):
    status = 401


class AuthorizationDenied(PortalError):
    status = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class RateLimitedFailure(PortalError):
    status = 403

    def __init__(self, wait_minutes: int):
        super().__init__(f"Account locked. Try again in {wait_minutes} minutes.")
        self.wait_minutes = wait_minutes


class NotFound(PortalError):
    status = 404


def register_error_handlers(app):
    @app.errorhandler(PortalError)
    def _portal_error(err):
        return jsonify({"error": err.message}), err.status

    @app.errorhandler(Exception)
    def _unexpected(err):
        if isinstance(err, HTTPException):
            return err
        logger.exception("Unhandled error on request")
        return jsonify({"error": "Internal server error"}), 500
