"""Service-layer exceptions.

Each class carries the HTTP status, a short ``error`` title and a default
caller-facing message. The API layer renders them without inspecting the
message text.
"""

from datetime import datetime
from typing import ClassVar


class ServiceError(Exception):
    """Base class for errors scoped to a single request."""

    status_code: ClassVar[int] = 400
    error: ClassVar[str] = "Operation Failed"
    default_message: ClassVar[str] = "The request could not be completed."

    def __init__(self, message: str | None = None, *, details: dict | None = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ServiceError):
    """One or more input fields are invalid.

    ``details`` maps field name to a human-readable message.
    """

    status_code = 400
    error = "Validation Failed"
    default_message = "Invalid input data"

    def __init__(self, field_errors: dict[str, str], message: str | None = None) -> None:
        super().__init__(message, details=field_errors)

    @property
    def field_errors(self) -> dict[str, str]:
        return self.details


class DuplicateEmail(ServiceError):
    status_code = 409
    error = "Registration Failed"
    default_message = "Email already registered"


class AccountNotFound(ServiceError):
    status_code = 404
    error = "Resource Not Found"
    default_message = "User not found"


class NoTokenProvided(ServiceError):
    status_code = 400
    error = "Logout Failed"
    default_message = "No valid token found"


class AuthenticationError(ServiceError):
    """Authentication failed."""

    status_code = 401
    error = "Authentication Failed"


class InvalidCredentials(AuthenticationError):
    """Unknown email or wrong password; the two are deliberately identical."""

    default_message = "Invalid email or password"


class AccountLocked(AuthenticationError):
    """Too many failed attempts; disclosed so the legitimate user knows to wait."""

    status_code = 423
    error = "Account Locked"
    default_message = "Account is locked. Try again later."

    def __init__(self, locked_until: datetime | None = None, message: str | None = None) -> None:
        details = {"locked_until": locked_until.isoformat()} if locked_until else None
        super().__init__(message, details=details)
        self.locked_until = locked_until


class TokenError(AuthenticationError):
    """Bearer token rejected."""

    error = "Invalid Token"
    default_message = "Invalid or corrupted authentication token."


class MalformedToken(TokenError):
    default_message = "Invalid authentication token format."


class InvalidSignature(TokenError):
    error = "Invalid Token Signature"
    default_message = "Token signature validation failed."


class TokenExpired(TokenError):
    error = "Token Expired"
    default_message = "Your session has expired. Please log in again."


class TokenRevoked(TokenError):
    error = "Token Revoked"
    default_message = "Token has been revoked"
