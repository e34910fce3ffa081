"""Request utility functions for client identification."""

import ipaddress
import logging

from fastapi import Request

from registration.core.config import settings

logger = logging.getLogger(__name__)


def _is_valid_ip(ip_str: str) -> bool:
    """Check if a string is a valid IP address."""
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def get_client_ip(request: Request, trusted_proxies: set[str] | None = None) -> str | None:
    """Get the client IP address from a request.

    X-Forwarded-For and X-Real-IP can be set by any client, so they are
    only honoured when the direct peer is a configured trusted proxy.
    Otherwise the direct connection address is used.
    """
    proxies = settings.trusted_proxy_ip_set if trusted_proxies is None else trusted_proxies
    direct_ip = request.client.host if request.client else None

    if direct_ip and direct_ip in proxies:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()
            if _is_valid_ip(client_ip):
                return client_ip
            logger.warning(f"Invalid IP in X-Forwarded-For header: {client_ip}")

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            ip = real_ip.strip()
            if _is_valid_ip(ip):
                return ip
            logger.warning(f"Invalid X-Real-IP: {real_ip}")

    return direct_ip


def get_user_agent(request: Request) -> str | None:
    return request.headers.get("User-Agent")


def extract_bearer_token(request: Request) -> str | None:
    """Return the token from ``Authorization: Bearer <token>``, if present."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None
