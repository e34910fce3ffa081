"""Security audit logging.

Writes one log line per security-relevant event to the
``registration.security`` logger. With structured logging enabled the event
fields become top-level JSON keys.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from registration.core.logging import get_logger


class AuditAction(str, Enum):
    """Security audit event types."""

    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    USER_REGISTERED = "USER_REGISTERED"
    USER_LOGOUT = "USER_LOGOUT"
    FEDERATED_LOGIN = "FEDERATED_LOGIN"
    PROFILE_UPDATED = "PROFILE_UPDATED"


# Events that indicate a possible attack are logged at WARNING
_WARNING_ACTIONS = {AuditAction.LOGIN_FAILED, AuditAction.ACCOUNT_LOCKED}


@dataclass(frozen=True)
class ClientInfo:
    """Where a request came from, for audit purposes."""

    ip: str | None = None
    user_agent: str | None = None


class SecurityAuditService:
    """Logs security events with actor and client details."""

    def __init__(self, audit_logger: logging.Logger | None = None):
        self._logger = audit_logger or get_logger("security")

    def log(
        self,
        action: AuditAction,
        user: str | None,
        client: ClientInfo | None = None,
        **details: Any,
    ) -> None:
        client = client or ClientInfo()
        level = logging.WARNING if action in _WARNING_ACTIONS else logging.INFO
        extra_fields = " ".join(f"{key}={value}" for key, value in details.items())
        message = f"{action.value}: user={user}, ip={client.ip}, userAgent={client.user_agent}"
        if extra_fields:
            message = f"{message}, {extra_fields}"
        self._logger.log(
            level,
            message,
            extra={
                "audit_action": action.value,
                "audit_user": user,
                "client_ip": client.ip,
                "user_agent": client.user_agent,
                **{f"audit_{key}": value for key, value in details.items()},
            },
        )

    def login_success(self, user: str, client: ClientInfo | None = None) -> None:
        self.log(AuditAction.LOGIN_SUCCESS, user, client)

    def login_failed(self, user: str, client: ClientInfo | None = None, reason: str = "") -> None:
        self.log(AuditAction.LOGIN_FAILED, user, client, reason=reason)

    def account_locked(self, user: str, client: ClientInfo | None = None) -> None:
        self.log(AuditAction.ACCOUNT_LOCKED, user, client)

    def registered(self, username: str, email: str, client: ClientInfo | None = None) -> None:
        self.log(AuditAction.USER_REGISTERED, username, client, email=email)

    def logout(self, user: str | None, client: ClientInfo | None = None) -> None:
        self.log(AuditAction.USER_LOGOUT, user, client)

    def federated_login(self, user: str, provider: str, client: ClientInfo | None = None) -> None:
        self.log(AuditAction.FEDERATED_LOGIN, user, client, provider=provider)

    def profile_updated(
        self, user: str, changed: list[str], client: ClientInfo | None = None
    ) -> None:
        self.log(AuditAction.PROFILE_UPDATED, user, client, fields=",".join(changed))
