"""Custom exceptions and error handling for the Story Sparks API."""

from fastapi import HTTPException, status


class StorySparksException(HTTPException):
    """Base exception for the Story Sparks API."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


# Validation Errors (400)
class ValidationError(StorySparksException):
    """Raised when input validation fails."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="VALIDATION_ERROR",
        )


# Authentication Errors (401)
class InvalidCredentialsError(StorySparksException):
    """Raised when login credentials are invalid.

    The message is the same whether the account is missing or the password
    is wrong.
    """

    def __init__(
        self,
        detail: str = "Invalid credentials. Please check your email and password.",
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_CREDENTIALS",
        )


class UnverifiedAccountError(StorySparksException):
    """Raised when the password matches but the email was never verified."""

    def __init__(
        self,
        detail: str = (
            "You must verify your email before signing in. Check your inbox "
            "and click the verification link."
        ),
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="EMAIL_NOT_VERIFIED",
        )


class AuthorizationError(StorySparksException):
    """Raised when the session is missing, invalid or revoked."""

    def __init__(self, detail: str = "Not authorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
        )


# Resource Errors (404, 409)
class NotFoundError(StorySparksException):
    """Raised when a resource is not found or is not owned by the caller."""

    def __init__(self, resource: str = "Resource", detail: str | None = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{resource} not found",
            error_code="NOT_FOUND",
        )


class AlreadyExistsError(StorySparksException):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, resource: str = "Resource", detail: str | None = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail or f"{resource} already exists",
            error_code="ALREADY_EXISTS",
        )


# Rate Limiting (429)
class RateLimitError(StorySparksException):
    """Raised when an attempt limit is exceeded."""

    def __init__(self, detail: str = "Too many attempts. Please try again later."):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            error_code="RATE_LIMIT_EXCEEDED",
        )


# Server Errors (500)
class InternalServerError(StorySparksException):
    """Raised for unexpected server errors."""

    def __init__(self, detail: str = "Internal server error. Please try again later."):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="INTERNAL_ERROR",
        )
