"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, Request, status

from registration.api.deps import get_auth_engine, get_client_info
from registration.core.request_utils import extract_bearer_token
from registration.schemas import (
    AuthenticationResponse,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
)
from registration.schemas.mapping import (
    to_authentication_response,
    to_profile_response,
    to_registration_input,
)
from registration.services.audit import ClientInfo
from registration.services.auth import AuthenticationEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    },
)
async def register(
    request: RegisterRequest,
    engine: AuthenticationEngine = Depends(get_auth_engine),
    client: ClientInfo = Depends(get_client_info),
) -> ProfileResponse:
    """Create an account.

    Returns 409 if the email is already registered and 400 with per-field
    details for invalid input or a taken username.
    """
    profile = await engine.register(to_registration_input(request), client)
    return to_profile_response(profile)


@router.post(
    "/login",
    response_model=AuthenticationResponse,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_423_LOCKED: {"model": ErrorResponse},
    },
)
async def login(
    request: LoginRequest,
    engine: AuthenticationEngine = Depends(get_auth_engine),
    client: ClientInfo = Depends(get_client_info),
) -> AuthenticationResponse:
    """Authenticate with email and password and get a bearer token."""
    result = await engine.login(request.email, request.password, client)
    return to_authentication_response(result)


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
)
async def logout(
    http_request: Request,
    engine: AuthenticationEngine = Depends(get_auth_engine),
    client: ClientInfo = Depends(get_client_info),
) -> MessageResponse:
    """Revoke the presented bearer token for the rest of its lifetime.

    Succeeds for expired or already revoked tokens too.
    """
    await engine.logout(extract_bearer_token(http_request), client)
    return MessageResponse(message="Logout successful")
