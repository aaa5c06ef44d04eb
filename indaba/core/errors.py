"""Error types for Indaba Care.

Services and routers raise these instead of building HTTP responses directly.
Each error carries the HTTP status it maps to; the server registers a single
handler that turns any ``IndabaError`` into a JSON response.
"""

from __future__ import annotations


class IndabaError(Exception):
    """Base error for all domain exceptions."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(IndabaError):
    """Raised when input is well-formed but violates a business rule."""

    status_code = 400


class UnauthorizedError(IndabaError):
    """Raised when credentials are missing, invalid or expired."""

    status_code = 401


class ForbiddenError(IndabaError):
    """Raised when the caller is authenticated but not allowed to act."""

    status_code = 403

    def __init__(self, message: str = "You don't have permission to access this resource") -> None:
        super().__init__(message)


class NotFoundError(IndabaError):
    """Raised when a referenced record does not exist."""

    status_code = 404


class ConflictError(IndabaError):
    """Raised when a create would duplicate a unique record."""

    status_code = 409
