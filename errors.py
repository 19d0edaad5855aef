"""
Application errors.

Each error carries the HTTP status and a short tag; the handlers registered in
``main.create_app`` turn them into ``{"error": tag, "message": text}`` bodies.
"""

from typing import Optional


class APIError(Exception):
    status_code = 500
    error = "internal_server_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(APIError):
    status_code = 400
    error = "bad_request"


class UnauthorizedError(APIError):
    status_code = 401
    error = "unauthorized"


class InvalidCredentialsError(UnauthorizedError):
    error = "invalid_credentials"


class ForbiddenError(APIError):
    status_code = 403
    error = "forbidden"


class NotFoundError(APIError):
    status_code = 404
    error = "not_found"


class ConflictError(APIError):
    status_code = 409
    error = "conflict"


class DatabaseUnavailableError(APIError):
    status_code = 503
    error = "database_unavailable"
