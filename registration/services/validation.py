"""Explicit input validation.

Each ``validate_*`` function returns a dict of field name -> message; an
empty dict means the input is valid. Callers decide whether to raise.
"""

import re
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from registration.services.mappers import ProfilePatch, RegistrationInput

# RFC 5321 path limit
MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
MAX_NAME_LENGTH = 100
MAX_URL_LENGTH = 2048

EMAIL_PATTERN = re.compile(
    r"[A-Za-z0-9._%+-]+@[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)*\.[A-Za-z]{2,}"
)
USERNAME_PATTERN = re.compile(r"[A-Za-z0-9]{3,20}")
NAME_PATTERN = re.compile(r"[A-Za-z][A-Za-z ]*")
PHONE_PATTERN = re.compile(r"\+?[0-9]{7,15}")
LOCALE_PATTERN = re.compile(r"[A-Za-z]{2,3}(?:[-_][A-Za-z0-9]{2,8})*")


def email_error(email: str | None) -> str | None:
    if email is None or not email.strip():
        return "Email is required"
    email = email.strip()
    if len(email) > MAX_EMAIL_LENGTH or not EMAIL_PATTERN.fullmatch(email):
        return "Invalid email format"
    return None


def password_error(password: str | None) -> str | None:
    if not password:
        return "Password is required"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if len(password) > MAX_PASSWORD_LENGTH:
        return f"Password must be at most {MAX_PASSWORD_LENGTH} characters"
    return None


def username_error(username: str) -> str | None:
    if not USERNAME_PATTERN.fullmatch(username.strip()):
        return "Username must be 3-20 alphanumeric characters"
    return None


def name_error(value: str, label: str) -> str | None:
    value = value.strip()
    if not value:
        return f"{label} is required"
    if len(value) > MAX_NAME_LENGTH:
        return f"{label} must be at most {MAX_NAME_LENGTH} characters"
    if not NAME_PATTERN.fullmatch(value):
        return f"{label} must contain only alphabetic characters and spaces"
    return None


def phone_error(phone: str) -> str | None:
    if not PHONE_PATTERN.fullmatch(phone):
        return "Phone must be 7 to 15 digits, with optional + for country code"
    return None


def url_error(url: str) -> str | None:
    if len(url) > MAX_URL_LENGTH:
        return f"URL must be at most {MAX_URL_LENGTH} characters"
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return "Must be an http(s) URL"
    return None


def locale_error(locale: str) -> str | None:
    if not LOCALE_PATTERN.fullmatch(locale):
        return "Invalid locale (expected e.g. 'en' or 'en-US')"
    return None


def timezone_error(timezone: str) -> str | None:
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return "Unknown timezone (expected an IANA name such as 'Europe/Madrid')"
    return None


def validate_registration(data: RegistrationInput) -> dict[str, str]:
    errors: dict[str, str | None] = {
        "email": email_error(data.email),
        "password": password_error(data.password),
        "username": username_error(data.username or ""),
        "first_name": name_error(data.first_name or "", "First name"),
        "last_name": name_error(data.last_name or "", "Last name"),
    }
    if data.phone:
        errors["phone"] = phone_error(data.phone)
    if data.terms_accepted is not True:
        errors["terms_accepted"] = "Terms acceptance is required"
    if data.privacy_accepted is not True:
        errors["privacy_accepted"] = "Privacy policy acceptance is required"
    return {field: message for field, message in errors.items() if message}


def validate_profile_patch(patch: ProfilePatch) -> dict[str, str]:
    """Validate only the fields the patch actually sets."""
    errors: dict[str, str | None] = {}
    if patch.username is not None:
        errors["username"] = username_error(patch.username)
    if patch.first_name is not None:
        errors["first_name"] = name_error(patch.first_name, "First name")
    if patch.last_name is not None:
        errors["last_name"] = name_error(patch.last_name, "Last name")
    if patch.phone is not None:
        errors["phone"] = phone_error(patch.phone)
    if patch.profile_picture_url is not None:
        errors["profile_picture_url"] = url_error(patch.profile_picture_url)
    if patch.locale is not None:
        errors["locale"] = locale_error(patch.locale)
    if patch.timezone is not None:
        errors["timezone"] = timezone_error(patch.timezone)
    return {field: message for field, message in errors.items() if message}
