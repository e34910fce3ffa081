"""Explicit conversions between API schemas and engine records."""

from registration.schemas.account import ProfileResponse, ProfileUpdateRequest
from registration.schemas.auth import AuthenticationResponse, RegisterRequest
from registration.services.mappers import LoginResult, Profile, ProfilePatch, RegistrationInput


def to_registration_input(request: RegisterRequest) -> RegistrationInput:
    return RegistrationInput(
        email=request.email,
        password=request.password,
        username=request.username,
        first_name=request.first_name,
        last_name=request.last_name,
        phone=request.phone,
        terms_accepted=request.terms_accepted,
        privacy_accepted=request.privacy_accepted,
    )


def to_profile_patch(request: ProfileUpdateRequest) -> ProfilePatch:
    return ProfilePatch(
        username=request.username,
        first_name=request.first_name,
        last_name=request.last_name,
        phone=request.phone,
        profile_picture_url=request.profile_picture_url,
        locale=request.locale,
        timezone=request.timezone,
    )


def to_profile_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        email=profile.email,
        username=profile.username,
        first_name=profile.first_name,
        last_name=profile.last_name,
        phone=profile.phone,
        profile_picture_url=profile.profile_picture_url,
        locale=profile.locale,
        timezone=profile.timezone,
        email_verified=profile.email_verified,
        last_login_at=profile.last_login_at,
        created_at=profile.created_at,
    )


def to_authentication_response(result: LoginResult) -> AuthenticationResponse:
    return AuthenticationResponse(
        access_token=result.token,
        token_type=result.token_type,
        expires_in=result.expires_in,
        user=to_profile_response(result.profile),
    )
