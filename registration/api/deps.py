"""Shared route dependencies."""

from fastapi import Depends, Request

from registration.core.request_utils import get_client_ip, get_user_agent
from registration.services.audit import ClientInfo
from registration.services.auth import AuthenticationEngine
from registration.services.errors import AccountNotFound, AuthenticationError
from registration.services.mappers import Profile


def get_auth_engine(request: Request) -> AuthenticationEngine:
    """The engine built by create_app."""
    return request.app.state.auth_engine


def get_client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip=get_client_ip(request, request.app.state.settings.trusted_proxy_ip_set),
        user_agent=get_user_agent(request),
    )


async def get_current_account(
    request: Request,
    engine: AuthenticationEngine = Depends(get_auth_engine),
) -> Profile:
    """Profile of the account the bearer token was issued to.

    BearerAuthMiddleware has already validated the token; this only checks
    that the account still exists.
    """
    subject = getattr(request.state, "subject", None)
    if not subject:
        raise AuthenticationError("Authentication required")
    try:
        return await engine.get_profile_by_email(subject)
    except AccountNotFound as e:
        raise AuthenticationError("Account no longer exists") from e
