"""Authentication engine: registration, login, logout, federated login, profiles.

Account states are derived, not stored:

- ACTIVE: enabled and not currently locked
- LOCKED: enabled, ``account_locked`` set and ``locked_until`` in the future;
  becomes ACTIVE again when the lock lapses or a login succeeds
- DISABLED: ``account_enabled`` false; invisible to login
"""

import logging
import secrets
from functools import cache
from uuid import UUID

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

from registration.models.account import Account
from registration.services.accounts import AccountStore, DuplicateKeyError
from registration.services.audit import ClientInfo, SecurityAuditService
from registration.services.errors import (
    AccountLocked,
    AccountNotFound,
    DuplicateEmail,
    InvalidCredentials,
    NoTokenProvided,
    TokenError,
    TokenRevoked,
    ValidationError,
)
from registration.services.lockout import LockoutPolicy
from registration.services.mappers import (
    FederatedIdentity,
    LoginResult,
    Profile,
    ProfilePatch,
    RegistrationInput,
    account_to_profile,
    normalize_email,
    profile_update_values,
    registration_to_account,
    split_display_name,
)
from registration.services.revocation import RevocationRegistry
from registration.services.tokens import TokenCodec
from registration.services.validation import validate_profile_patch, validate_registration

logger = logging.getLogger(__name__)

# Argon2 password hasher with recommended parameters
# Memory: 64 MiB, Time: 3 iterations, Parallelism: 4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)

USERNAME_TAKEN = "Username is already taken"
# Attempts to create a federated account before giving up on a unique-key race
_FEDERATED_CREATE_ATTEMPTS = 3


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash using constant-time comparison."""
    try:
        return ph.verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except InvalidHashError:
        logger.error("Stored password hash is not a valid Argon2 hash")
        return False


@cache
def _dummy_hash() -> str:
    return hash_password(secrets.token_urlsafe(16))


class AuthenticationEngine:
    """Orchestrates credential checks, the lockout policy, the token codec
    and the revocation registry.

    Built once per process with its collaborators passed in.
    """

    def __init__(
        self,
        store: AccountStore,
        codec: TokenCodec,
        registry: RevocationRegistry,
        policy: LockoutPolicy,
        audit: SecurityAuditService | None = None,
    ):
        self._store = store
        self._codec = codec
        self._registry = registry
        self._policy = policy
        self._audit = audit or SecurityAuditService()

    # -- registration -------------------------------------------------------

    async def register(self, data: RegistrationInput, client: ClientInfo | None = None) -> Profile:
        """Create an enabled, unverified account.

        Raises:
            ValidationError: invalid fields, or the username is taken.
            DuplicateEmail: the email is already registered.
        """
        field_errors = validate_registration(data)
        if field_errors:
            raise ValidationError(field_errors)

        email = normalize_email(data.email)
        if await self._store.exists_by_email(email):
            raise DuplicateEmail()
        if await self._store.exists_by_username(data.username.strip()):
            raise ValidationError({"username": USERNAME_TAKEN})

        account = registration_to_account(data, hash_password(data.password), self._policy.now())
        try:
            account = await self._store.add(account)
        except DuplicateKeyError as e:
            # Lost a race with a concurrent registration
            if e.field == "email":
                raise DuplicateEmail() from e
            raise ValidationError({"username": USERNAME_TAKEN}) from e

        logger.info(f"Registered account {account.id}")
        self._audit.registered(account.username, account.email, client)
        return account_to_profile(account)

    # -- password login -----------------------------------------------------

    async def login(
        self,
        email: str,
        password: str,
        client: ClientInfo | None = None,
    ) -> LoginResult:
        """Check credentials and issue a bearer token.

        Raises:
            InvalidCredentials: unknown/disabled email or wrong password.
            AccountLocked: the account is locked, including by this attempt.
        """
        email = normalize_email(email or "")
        account = await self._store.get_enabled_by_email(email) if email else None

        if account is None:
            # Same hashing cost as a real check so timing does not reveal the email exists
            verify_password(password or "", _dummy_hash())
            self._audit.login_failed(email, client, reason="unknown_account")
            raise InvalidCredentials()

        if self._policy.is_currently_locked(account):
            self._audit.login_failed(email, client, reason="locked")
            raise AccountLocked(account.locked_until)

        if not account.password_hash:
            # Federated-only accounts have no password to guess
            self._audit.login_failed(email, client, reason="no_password")
            raise InvalidCredentials()

        if not verify_password(password or "", account.password_hash):
            locked = await self._policy.record_failed_attempt(account)
            if locked:
                self._audit.account_locked(email, client)
                raise AccountLocked(account.locked_until)
            self._audit.login_failed(email, client, reason="bad_password")
            raise InvalidCredentials()

        await self._policy.clear_on_success(account)
        await self._rehash_if_needed(account, password)
        self._audit.login_success(email, client)
        return self._login_result(account)

    async def _rehash_if_needed(self, account: Account, password: str) -> None:
        if ph.check_needs_rehash(account.password_hash):
            new_hash = hash_password(password)
            await self._store.update_fields(account.id, {"password_hash": new_hash})
            account.password_hash = new_hash
            logger.info(f"Upgraded password hash parameters for account {account.id}")

    def _login_result(self, account: Account) -> LoginResult:
        return LoginResult(
            token=self._codec.issue(account.email),
            expires_in=self._codec.validity_seconds,
            profile=account_to_profile(account),
        )

    # -- federated login ----------------------------------------------------

    async def federated_login(
        self,
        identity: FederatedIdentity,
        client: ClientInfo | None = None,
    ) -> LoginResult:
        """Exchange an externally authenticated identity for a local session.

        Re-uses the account already linked to the provider identity, links
        an existing account with the same email, or creates a new one. The
        provider has authenticated the user, so no password or lock check
        applies and the email counts as verified.

        Raises:
            InvalidCredentials: the matching account is disabled; it is
                neither linked nor given a token.
        """
        account = await self._resolve_federated_account(identity)
        if not account.account_enabled:
            self._audit.login_failed(account.email, client, reason="disabled")
            raise InvalidCredentials()
        await self._policy.clear_on_success(account)
        self._audit.federated_login(account.email, identity.provider, client)
        return self._login_result(account)

    async def _resolve_federated_account(self, identity: FederatedIdentity) -> Account:
        email = normalize_email(identity.email)
        for _ in range(_FEDERATED_CREATE_ATTEMPTS):
            account = await self._store.get_by_provider_identity(
                identity.provider, identity.provider_subject_id
            )
            if account is not None:
                return account

            account = await self._store.get_by_email(email)
            if account is not None:
                if not account.account_enabled:
                    # Refused by the caller; never link a disabled account
                    return account
                linked = await self._store.update_fields(
                    account.id,
                    {
                        "oauth_provider": identity.provider,
                        "oauth_provider_id": identity.provider_subject_id,
                        "email_verified": True,
                    },
                )
                if linked is not None:
                    logger.info(f"Linked {identity.provider} identity to account {linked.id}")
                    return linked
                continue

            try:
                return await self._create_federated_account(identity, email)
            except DuplicateKeyError as e:
                logger.info(f"Federated account creation raced ({e.field}), retrying lookup")
        raise RuntimeError("Could not resolve federated account after concurrent updates")

    async def _create_federated_account(self, identity: FederatedIdentity, email: str) -> Account:
        first_name, last_name = split_display_name(identity.display_name)
        account = Account(
            email=email,
            username=await self._available_username(email),
            password_hash="",
            first_name=first_name,
            last_name=last_name,
            email_verified=True,
            account_enabled=True,
            account_locked=False,
            failed_login_attempts=0,
            oauth_provider=identity.provider,
            oauth_provider_id=identity.provider_subject_id,
        )
        account = await self._store.add(account)
        logger.info(f"Created {identity.provider} account {account.id}")
        return account

    async def _available_username(self, email: str) -> str:
        """Derive a free 3-20 character alphanumeric username from an email."""
        base = "".join(ch for ch in email.split("@", 1)[0] if ch.isascii() and ch.isalnum())
        base = (base or "user")[:20].ljust(3, "0")
        candidate = base
        for n in range(1, 10):
            if not await self._store.exists_by_username(candidate):
                return candidate
            suffix = str(n)
            candidate = f"{base[: 20 - len(suffix)]}{suffix}"
        suffix = secrets.token_hex(3)
        return f"{base[: 20 - len(suffix)]}{suffix}"

    # -- tokens -------------------------------------------------------------

    async def logout(self, token: str | None, client: ClientInfo | None = None) -> None:
        """Revoke ``token``. Revoking the same token twice is harmless.

        Raises:
            NoTokenProvided: no token, or not even shaped like a JWT.
        """
        if not token or not token.strip() or token.count(".") != 2:
            raise NoTokenProvided()
        try:
            subject = self._codec.subject_of(token)
        except TokenError:
            subject = None
        self._registry.revoke(token)
        self._audit.logout(subject, client)

    def authenticate_token(self, token: str) -> str:
        """Resolve a presented bearer token to its subject.

        Raises:
            TokenRevoked: the token was logged out.
            MalformedToken / InvalidSignature / TokenExpired: from the codec.
        """
        if self._registry.is_revoked(token):
            raise TokenRevoked()
        return self._codec.subject_of(token)

    # -- profiles -----------------------------------------------------------

    async def get_profile(self, account_id: UUID) -> Profile:
        account = await self._store.get_by_id(account_id)
        if account is None:
            raise AccountNotFound()
        return account_to_profile(account)

    async def get_profile_by_email(self, email: str) -> Profile:
        """Profile of the enabled account with ``email`` (a token subject)."""
        account = await self._store.get_enabled_by_email(normalize_email(email))
        if account is None:
            raise AccountNotFound()
        return account_to_profile(account)

    async def update_profile(
        self,
        account_id: UUID,
        patch: ProfilePatch,
        client: ClientInfo | None = None,
    ) -> Profile:
        """Apply the non-null fields of ``patch``.

        Email, password and security state are never touched here.

        Raises:
            AccountNotFound: no such account.
            ValidationError: invalid fields, or the new username is taken.
        """
        account = await self._store.get_by_id(account_id)
        if account is None:
            raise AccountNotFound()
        if patch.is_empty():
            return account_to_profile(account)

        field_errors = validate_profile_patch(patch)
        if field_errors:
            raise ValidationError(field_errors)

        values = profile_update_values(patch)
        new_username = values.get("username")
        if (
            new_username is not None
            and new_username != account.username
            and await self._store.exists_by_username(new_username, exclude_id=account_id)
        ):
            raise ValidationError({"username": USERNAME_TAKEN})

        try:
            updated = await self._store.update_fields(account_id, values)
        except DuplicateKeyError as e:
            raise ValidationError({"username": USERNAME_TAKEN}) from e
        if updated is None:
            raise AccountNotFound()

        self._audit.profile_updated(updated.email, sorted(values), client)
        return account_to_profile(updated)
