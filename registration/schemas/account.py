"""Pydantic schemas for account profiles."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ProfileResponse(BaseModel):
    """Public view of an account. Never includes the password hash."""

    id: UUID
    email: str
    username: str
    first_name: str
    last_name: str
    phone: str | None = None
    profile_picture_url: str | None = None
    locale: str | None = None
    timezone: str | None = None
    email_verified: bool
    last_login_at: datetime | None = None
    created_at: datetime | None = None


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; omitted or null fields are left unchanged."""

    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    profile_picture_url: str | None = None
    locale: str | None = None
    timezone: str | None = None


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    timestamp: datetime
    status: int
    error: str
    message: str
    details: dict | None = None
