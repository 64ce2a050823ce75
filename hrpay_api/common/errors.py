# hrpay_api/common/errors.py
from flask import Blueprint, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from hrpay_api.common.http import fail
from hrpay_api.extensions import db

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


class ValidationError(APIError):
    """Bad input shape, missing field, duplicate key or a policy rule violated."""
    def __init__(self, message, payload=None):
        super().__init__("VALIDATION_ERROR", message, 422, payload)


class NotFoundError(APIError):
    def __init__(self, message="Not found", payload=None):
        super().__init__("NOT_FOUND", message, 404, payload)


class ConflictError(APIError):
    """The record is not in a state that allows the operation (no-op)."""
    def __init__(self, message, payload=None):
        super().__init__("STATE_CONFLICT", message, 409, payload)


class ComputationError(APIError):
    """Payroll could not be computed for an employee."""
    def __init__(self, message, payload=None):
        super().__init__("COMPUTATION_ERROR", message, 422, payload)


class CircularDependencyError(ComputationError):
    def __init__(self, components):
        self.components = list(components)
        super().__init__(
            "Circular dependency between salary components: " + ", ".join(self.components),
            payload={"components": self.components},
        )


@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    db.session.rollback()
    return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(message=e.description or "HTTP error", status=e.code or 400)

@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    db.session.rollback()
    # 409 for unique/FK/check violations
    return fail(message="Conflict / integrity error", status=409, code="CONSTRAINT_ERROR",
                detail=str(e.orig) if getattr(e, "orig", None) else str(e))

@bp_errors.app_errorhandler(Exception)
def _unhandled(e: Exception):
    db.session.rollback()
    current_app.logger.exception(e)
    return fail(message="Internal Server Error", status=500)
