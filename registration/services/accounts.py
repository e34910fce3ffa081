"""Credential store: data access for Account rows.

Every method is its own unit of work: it opens a session from the injected
session factory, commits, and closes it. The lockout counters are changed
only through single-statement atomic updates.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import case, func, literal, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from registration.models.account import Account
from registration.models.base import UTCDateTime

logger = logging.getLogger(__name__)


class DuplicateKeyError(Exception):
    """An insert or update hit a unique constraint.

    ``field`` names the conflicting column when it can be determined.
    """

    def __init__(self, field: str | None):
        super().__init__(f"Duplicate value for {field or 'unique key'}")
        self.field = field


@dataclass(frozen=True)
class FailureRecord:
    """Stored lockout state right after a failed attempt was counted."""

    failed_login_attempts: int
    account_locked: bool
    locked_until: datetime | None


class AccountStore:
    """Async SQLAlchemy persistence for accounts."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def get_by_id(self, account_id: UUID) -> Account | None:
        async with self._session_maker() as session:
            return await session.get(Account, account_id)

    async def get_by_email(self, email: str) -> Account | None:
        async with self._session_maker() as session:
            result = await session.execute(select(Account).where(Account.email == email))
            return result.scalar_one_or_none()

    async def get_enabled_by_email(self, email: str) -> Account | None:
        """Login lookup: disabled accounts are invisible."""
        async with self._session_maker() as session:
            result = await session.execute(
                select(Account).where(
                    Account.email == email,
                    Account.account_enabled.is_(True),
                )
            )
            return result.scalar_one_or_none()

    async def get_by_provider_identity(self, provider: str, provider_id: str) -> Account | None:
        async with self._session_maker() as session:
            result = await session.execute(
                select(Account).where(
                    Account.oauth_provider == provider,
                    Account.oauth_provider_id == provider_id,
                )
            )
            return result.scalar_one_or_none()

    async def exists_by_email(self, email: str) -> bool:
        async with self._session_maker() as session:
            return await self._exists(session, Account.email == email)

    async def exists_by_username(self, username: str, exclude_id: UUID | None = None) -> bool:
        async with self._session_maker() as session:
            criteria = [Account.username == username]
            if exclude_id is not None:
                criteria.append(Account.id != exclude_id)
            return await self._exists(session, *criteria)

    async def _exists(self, session: AsyncSession, *criteria: Any) -> bool:
        result = await session.execute(select(func.count(Account.id)).where(*criteria))
        return (result.scalar() or 0) > 0

    async def add(self, account: Account) -> Account:
        """Insert a new account.

        Raises:
            DuplicateKeyError: email, username or provider identity taken.
        """
        async with self._session_maker() as session:
            session.add(account)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateKeyError(await self._conflicting_field(session, account)) from e
            await session.refresh(account)
            return account

    async def _conflicting_field(self, session: AsyncSession, account: Account) -> str | None:
        if await self._exists(session, Account.email == account.email):
            return "email"
        if await self._exists(session, Account.username == account.username):
            return "username"
        if account.oauth_provider and await self._exists(
            session,
            Account.oauth_provider == account.oauth_provider,
            Account.oauth_provider_id == account.oauth_provider_id,
        ):
            return "oauth_provider_id"
        return None

    async def update_fields(self, account_id: UUID, values: dict[str, Any]) -> Account | None:
        """Apply column values to one account and return the fresh row.

        Returns None if the account does not exist.

        Raises:
            DuplicateKeyError: a unique column would collide.
        """
        async with self._session_maker() as session:
            if values:
                stmt = (
                    update(Account)
                    .where(Account.id == account_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                try:
                    await session.execute(stmt)
                    await session.commit()
                except IntegrityError as e:
                    await session.rollback()
                    field = "username" if "username" in values else None
                    raise DuplicateKeyError(field) from e
            return await session.get(Account, account_id)

    async def increment_failed_attempts(
        self,
        account_id: UUID,
        threshold: int,
        lock_until: datetime,
    ) -> FailureRecord | None:
        """Count one failed login and lock the account at ``threshold``.

        One UPDATE statement: the increment and the lock decision read the
        row's current counter inside the database, so parallel failures on
        the same account each land exactly once. Commits immediately and
        independently of any other work in the caller's request.
        """
        next_count = Account.failed_login_attempts + 1
        reaches_threshold = next_count >= threshold
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(
                failed_login_attempts=next_count,
                account_locked=case((reaches_threshold, True), else_=Account.account_locked),
                locked_until=case(
                    (reaches_threshold, literal(lock_until, UTCDateTime)),
                    else_=Account.locked_until,
                ),
            )
            .returning(
                Account.failed_login_attempts,
                Account.account_locked,
                Account.locked_until,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._session_maker() as session:
            result = await session.execute(stmt)
            row = result.one_or_none()
            await session.commit()
        if row is None:
            return None
        return FailureRecord(
            failed_login_attempts=row.failed_login_attempts,
            account_locked=row.account_locked,
            locked_until=row.locked_until,
        )

    async def reset_failed_attempts(self, account_id: UUID, login_at: datetime) -> None:
        """Zero the counter, clear any lock and stamp the login time."""
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(
                failed_login_attempts=0,
                account_locked=False,
                locked_until=None,
                last_login_at=login_at,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._session_maker() as session:
            await session.execute(stmt)
            await session.commit()
