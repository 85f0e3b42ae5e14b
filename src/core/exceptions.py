"""Domain error taxonomy.

Services raise these; the exception handlers in ``src.main`` render them
into the ``{"success": false, "error": ...}`` envelope with the matching
status code. Routers never build error responses themselves.
"""

from fastapi import status


class AppError(Exception):
    """Base application error."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Server Error", code: str = "internal_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(AppError):
    """Missing post, comment, user or reaction."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Resource not found", code: str = "not_found"):
        super().__init__(message, code)


class ForbiddenError(AppError):
    """Ownership or role violation."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(
        self,
        message: str = "Not authorized to access this route",
        code: str = "forbidden",
    ):
        super().__init__(message, code)


class UnauthorizedError(AppError):
    """Missing or invalid credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Invalid credentials", code: str = "unauthorized"):
        super().__init__(message, code)


class BadRequestError(AppError):
    """Missing or invalid field."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Bad request", code: str = "bad_request"):
        super().__init__(message, code)


class ConflictError(AppError):
    """Duplicate unique key (slug, email).

    Reported as 400 with the ``Duplicate field value entered for <field>``
    message, the same shape clients already handle for validation failures.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Duplicate field value entered for {field}", "duplicate_key")
