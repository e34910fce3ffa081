"""Per-IP rate limiting for the authentication endpoints."""

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from registration.api.errors import error_body
from registration.core.request_utils import get_client_ip

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

# Registration, login, logout
RATE_LIMITED_PATHS = ["/api/v1/auth"]


@dataclass
class RateLimitBucket:
    """Request timestamps for one client inside the sliding window."""

    requests: list[float] = field(default_factory=list)
    last_update: float = field(default_factory=time.monotonic)


class RateLimiter:
    """In-memory sliding-window limiter keyed by client IP.

    One instance per application; buckets are not shared between workers.
    """

    def __init__(
        self,
        requests_per_minute: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        self.requests_per_minute = requests_per_minute
        self._clock = clock
        self._buckets: dict[str, RateLimitBucket] = defaultdict(RateLimitBucket)
        self._lock = asyncio.Lock()

    async def check_rate_limit(self, client_ip: str) -> tuple[bool, dict[str, str]]:
        """Record a request from ``client_ip`` if allowed.

        Returns:
            Tuple of (is_allowed, headers_dict)
        """
        async with self._lock:
            now = self._clock()
            bucket = self._buckets[client_ip]
            cutoff = now - WINDOW_SECONDS
            bucket.requests = [ts for ts in bucket.requests if ts > cutoff]
            bucket.last_update = now

            remaining = self.requests_per_minute - len(bucket.requests)
            headers = {"X-RateLimit-Limit": str(self.requests_per_minute)}

            if remaining <= 0:
                oldest = min(bucket.requests)
                headers["Retry-After"] = str(max(1, int(WINDOW_SECONDS - (now - oldest))))
                headers["X-RateLimit-Remaining"] = "0"
                return False, headers

            bucket.requests.append(now)
            headers["X-RateLimit-Remaining"] = str(remaining - 1)
            return True, headers

    async def reset(self, client_ip: str | None = None) -> None:
        async with self._lock:
            if client_ip:
                self._buckets.pop(client_ip, None)
            else:
                self._buckets.clear()

    async def cleanup_inactive_buckets(self, inactive_seconds: int = 3600) -> int:
        """Remove buckets idle for ``inactive_seconds``. Returns count removed.

        Keeps memory bounded when many distinct IPs come and go.
        """
        async with self._lock:
            cutoff = self._clock() - inactive_seconds
            stale = [key for key, bucket in self._buckets.items() if bucket.last_update < cutoff]
            for key in stale:
                del self._buckets[key]

        if stale:
            logger.info(f"Cleaned up {len(stale)} inactive rate limit buckets")
        return len(stale)

    def __len__(self) -> int:
        return len(self._buckets)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies a RateLimiter to the authentication endpoints."""

    def __init__(
        self,
        app: ASGIApp,
        rate_limiter: RateLimiter,
        paths: list[str] | None = None,
        enabled: bool = True,
        trusted_proxies: set[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.rate_limiter = rate_limiter
        self.paths = paths or RATE_LIMITED_PATHS
        self.enabled = enabled
        self.trusted_proxies = trusted_proxies

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not self.enabled or not any(
            path == prefix or path.startswith(prefix + "/") for prefix in self.paths
        ):
            return await call_next(request)

        client_ip = get_client_ip(request, self.trusted_proxies) or "unknown"
        is_allowed, headers = await self.rate_limiter.check_rate_limit(client_ip)

        if not is_allowed:
            logger.warning(f"Rate limit exceeded for {client_ip} on {path}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=error_body(
                    429, "Too Many Requests", "Too many requests. Try again later."
                ),
                headers=headers,
            )

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response


async def rate_limit_cleanup_loop(
    rate_limiter: RateLimiter, interval_seconds: float = 3600
) -> None:
    """Periodic cleanup of inactive rate limit buckets."""
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            await rate_limiter.cleanup_inactive_buckets()
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.warning(f"Rate limiter cleanup error: {e}")
