# hrms_payroll/common/errors.py
from flask import Blueprint, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from hrms_payroll.common.http import fail

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


# ---------- payroll error taxonomy ----------

class PayrollError(APIError):
    """Base for settlement-engine failures. `payload` carries the failing identifiers."""
    code = "PAYROLL_ERROR"
    status_code = 400

    def __init__(self, message, **ids):
        super().__init__(self.code, message, status_code=self.status_code, payload=ids or None)


class ConfigurationError(PayrollError):
    """A referenced configuration entity is missing or not approved."""
    code = "CONFIGURATION_ERROR"
    status_code = 422


class ConfigTransitionError(PayrollError):
    code = "CONFIG_TRANSITION"
    status_code = 409


class MissingReferenceError(PayrollError):
    """Employee cannot be resolved, or a disbursement has no linkable workflow record."""
    code = "MISSING_REFERENCE"
    status_code = 404


class RunNotFound(PayrollError):
    code = "RUN_NOT_FOUND"
    status_code = 404


class RunStateError(PayrollError):
    code = "RUN_STATE"
    status_code = 409


class DuplicateKeyConflict(PayrollError):
    """Raised by the store when an insert collides on a uniqueness key.
    The engine handles it by retrying the unit as an overwrite."""
    code = "DUPLICATE_KEY"
    status_code = 409


class NegativeNetPayWarning(UserWarning):
    """Never raised. Its message is recorded on the settlement's exceptions."""

    @staticmethod
    def describe(net_pay) -> str:
        return f"Negative net pay ({net_pay}); finance review required"


# ---------- handlers ----------

@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(message=e.description or "HTTP error", status=e.code or 400)

@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    # 409 for unique/FK violations
    return fail(message="Conflict / integrity error", status=409, detail=str(e.orig) if getattr(e, "orig", None) else str(e))

@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

@bp_errors.app_errorhandler(Exception)
def _unhandled(e: Exception):
    current_app.logger.exception(e)
    return fail(message="Internal Server Error", status=500, detail=str(e))
