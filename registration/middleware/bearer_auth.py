"""Bearer token gate.

Runs on every request before any route. A request that presents
``Authorization: Bearer <token>`` is rejected if the token is revoked,
malformed, wrongly signed or expired; otherwise the token subject (the
account email) is bound to ``request.state.subject``. Protected paths
without a token are rejected outright.
"""

import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from registration.api.errors import error_body
from registration.core.request_utils import extract_bearer_token
from registration.services.auth import AuthenticationEngine
from registration.services.errors import TokenError

logger = logging.getLogger(__name__)

# Paths that handle their own tokens (logout must accept revoked/expired
# tokens to stay idempotent) or need none
EXCLUDED_PATHS = [
    "/api/v1/auth",
    "/health",
]

# Paths that require an authenticated subject
PROTECTED_PATHS = [
    "/api/users",
]


def _matches(path: str, prefixes: list[str]) -> bool:
    """Exact or segment-boundary prefix match."""
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Validates bearer tokens through the app's AuthenticationEngine."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        request.state.subject = None

        # CORS preflight requests never carry credentials
        if request.method == "OPTIONS" or _matches(path, EXCLUDED_PATHS):
            return await call_next(request)

        token = extract_bearer_token(request)

        if token is None:
            if _matches(path, PROTECTED_PATHS):
                logger.info(f"Request without token: {request.method} {path}")
                return self._unauthorized(
                    "Authentication Required",
                    "Authentication required. Include Authorization: Bearer <token> header.",
                )
            return await call_next(request)

        engine: AuthenticationEngine = request.app.state.auth_engine
        try:
            request.state.subject = engine.authenticate_token(token)
        except TokenError as e:
            logger.warning(f"Rejected token for {request.method} {path}: {e.error}")
            return self._unauthorized(e.error, e.message)

        return await call_next(request)

    @staticmethod
    def _unauthorized(error: str, message: str) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=error_body(401, error, message),
            headers={"WWW-Authenticate": "Bearer"},
        )
