# Registration Pydantic Schemas
from registration.schemas.account import ErrorResponse, ProfileResponse, ProfileUpdateRequest
from registration.schemas.auth import (
    AuthenticationResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
)

__all__ = [
    "AuthenticationResponse",
    "ErrorResponse",
    "LoginRequest",
    "MessageResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "RegisterRequest",
]
