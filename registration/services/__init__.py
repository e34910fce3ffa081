# Registration Services
from registration.services.accounts import AccountStore
from registration.services.audit import ClientInfo, SecurityAuditService
from registration.services.auth import AuthenticationEngine
from registration.services.lockout import LockoutPolicy
from registration.services.revocation import RevocationRegistry
from registration.services.tokens import TokenCodec

__all__ = [
    "AccountStore",
    "AuthenticationEngine",
    "ClientInfo",
    "LockoutPolicy",
    "RevocationRegistry",
    "SecurityAuditService",
    "TokenCodec",
]
