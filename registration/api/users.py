"""Profile endpoints. All require a valid bearer token."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from registration.api.deps import get_auth_engine, get_client_info, get_current_account
from registration.schemas import ErrorResponse, ProfileResponse, ProfileUpdateRequest
from registration.schemas.mapping import to_profile_patch, to_profile_response
from registration.services.audit import ClientInfo
from registration.services.auth import AuthenticationEngine
from registration.services.mappers import Profile

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    current: Profile = Depends(get_current_account),
) -> ProfileResponse:
    """Profile of the authenticated account."""
    return to_profile_response(current)


@router.get(
    "/{user_id}/profile",
    response_model=ProfileResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def get_profile(
    user_id: UUID,
    _current: Profile = Depends(get_current_account),
    engine: AuthenticationEngine = Depends(get_auth_engine),
) -> ProfileResponse:
    profile = await engine.get_profile(user_id)
    return to_profile_response(profile)


@router.put(
    "/{user_id}/profile",
    response_model=ProfileResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    },
)
async def update_profile(
    user_id: UUID,
    request: ProfileUpdateRequest,
    _current: Profile = Depends(get_current_account),
    engine: AuthenticationEngine = Depends(get_auth_engine),
    client: ClientInfo = Depends(get_client_info),
) -> ProfileResponse:
    """Apply the non-null fields of the request.

    Email and password cannot be changed here.
    """
    profile = await engine.update_profile(user_id, to_profile_patch(request), client)
    return to_profile_response(profile)
