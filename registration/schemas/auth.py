"""Pydantic schemas for authentication API.

Field rules (lengths, patterns) live in registration.services.validation so
errors come back field by field with one consistent format; these models
only fix the JSON shape.
"""

from pydantic import BaseModel, Field

from registration.schemas.account import ProfileResponse


class RegisterRequest(BaseModel):
    """Request to create an account."""

    email: str
    password: str
    username: str
    first_name: str
    last_name: str
    phone: str | None = None
    terms_accepted: bool = False
    privacy_accepted: bool = False


class LoginRequest(BaseModel):
    """Request for login."""

    email: str
    password: str


class AuthenticationResponse(BaseModel):
    """Response with the bearer token and the account profile."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(description="Token validity in seconds")
    user: ProfileResponse


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
