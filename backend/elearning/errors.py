"""Service-level exceptions.

Services raise these instead of `HTTPException` so they stay usable
from scripts and tests; `main.py` maps each one to its HTTP status and
the `{success: false, error}` response envelope.
"""


class ServiceError(Exception):
    """Base class for expected, user-facing failures."""
    status_code = 500

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(ServiceError):
    status_code = 400


class AuthenticationFailed(ServiceError):
    status_code = 401


class PermissionDenied(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409
