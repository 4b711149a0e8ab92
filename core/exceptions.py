"""
Error taxonomy for the API.

Every error carries the HTTP status it maps to; the handlers in ``main.py``
turn them into the ``{"error": true, "message": ...}`` envelope.
"""


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ExpiredError(AppError):
    status_code = 400
    default_message = "OTP expired or invalid. Please request a new OTP."


class InvalidCredentialError(AppError):
    status_code = 401
    default_message = "Invalid credentials"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Access token required"


class PermissionDeniedError(AppError):
    status_code = 403
    default_message = "Insufficient permissions"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class RateLimitedError(AppError):
    status_code = 429
    default_message = "Too many requests. Please try again later."

    def __init__(self, message: str | None = None, retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class InternalError(AppError):
    status_code = 500
