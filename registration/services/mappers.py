"""Engine input/output records and the explicit mappings to and from Account.

Each direction is written out field by field. The update mapping lists the
only columns a profile update may touch; email, password and every
security column are absent from it.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any
from uuid import UUID

from registration.models.account import Account

# Columns a profile update may write, in patch field order
PROFILE_UPDATE_FIELDS = (
    "username",
    "first_name",
    "last_name",
    "phone",
    "profile_picture_url",
    "locale",
    "timezone",
)


@dataclass(frozen=True)
class RegistrationInput:
    email: str
    password: str
    username: str
    first_name: str
    last_name: str
    phone: str | None = None
    terms_accepted: bool = False
    privacy_accepted: bool = False


@dataclass(frozen=True)
class ProfilePatch:
    """Partial profile update; None means "leave unchanged"."""

    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    profile_picture_url: str | None = None
    locale: str | None = None
    timezone: str | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


@dataclass(frozen=True)
class FederatedIdentity:
    """An identity asserted by an external provider after it authenticated the user."""

    email: str
    display_name: str
    provider_subject_id: str
    provider: str = "google"


@dataclass(frozen=True)
class Profile:
    id: UUID
    email: str
    username: str
    first_name: str
    last_name: str
    phone: str | None
    profile_picture_url: str | None
    locale: str | None
    timezone: str | None
    email_verified: bool
    last_login_at: datetime | None
    created_at: datetime | None


@dataclass(frozen=True)
class LoginResult:
    token: str
    expires_in: int
    profile: Profile
    token_type: str = "Bearer"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def registration_to_account(
    data: RegistrationInput,
    password_hash: str,
    accepted_at: datetime,
) -> Account:
    """Build a new, enabled, unlocked account from a registration."""
    return Account(
        email=normalize_email(data.email),
        username=data.username.strip(),
        password_hash=password_hash,
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        phone=data.phone or None,
        email_verified=False,
        account_enabled=True,
        account_locked=False,
        locked_until=None,
        failed_login_attempts=0,
        terms_accepted_at=accepted_at,
        privacy_policy_accepted_at=accepted_at,
    )


def account_to_profile(account: Account) -> Profile:
    return Profile(
        id=account.id,
        email=account.email,
        username=account.username,
        first_name=account.first_name,
        last_name=account.last_name,
        phone=account.phone,
        profile_picture_url=account.profile_picture_url,
        locale=account.locale,
        timezone=account.timezone,
        email_verified=account.email_verified,
        last_login_at=account.last_login_at,
        created_at=account.created_at,
    )


def profile_update_values(patch: ProfilePatch) -> dict[str, Any]:
    """Column values for the non-null fields of ``patch``."""
    values: dict[str, Any] = {}
    for name in PROFILE_UPDATE_FIELDS:
        value = getattr(patch, name)
        if value is None:
            continue
        values[name] = value.strip() if isinstance(value, str) else value
    return values


def split_display_name(display_name: str) -> tuple[str, str]:
    """Split a display name into first name and the rest."""
    parts = display_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])
