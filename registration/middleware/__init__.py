"""Middleware module for the registration service."""

from registration.middleware.bearer_auth import BearerAuthMiddleware
from registration.middleware.rate_limit import (
    RateLimiter,
    RateLimitMiddleware,
    rate_limit_cleanup_loop,
)

__all__ = [
    "BearerAuthMiddleware",
    "RateLimitMiddleware",
    "RateLimiter",
    "rate_limit_cleanup_loop",
]
