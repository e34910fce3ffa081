"""Lockout policy: failed-attempt counting and temporary account locks."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from registration.core.config import Settings
from registration.models.account import Account
from registration.services.accounts import AccountStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_FAILED_ATTEMPTS = 5
DEFAULT_LOCK_DURATION = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LockoutPolicy:
    """Turns an account's failure history into a lock decision.

    The counter and lock columns are written through AccountStore's atomic
    updates; the passed Account instance is refreshed with the stored
    values so callers see the outcome.
    """

    def __init__(
        self,
        store: AccountStore,
        max_failed_attempts: int = DEFAULT_MAX_FAILED_ATTEMPTS,
        lock_duration: timedelta = DEFAULT_LOCK_DURATION,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be at least 1")
        if lock_duration <= timedelta(0):
            raise ValueError("lock_duration must be positive")
        self._store = store
        self.max_failed_attempts = max_failed_attempts
        self.lock_duration = lock_duration
        self._clock = clock

    @classmethod
    def from_settings(cls, store: AccountStore, config: Settings) -> "LockoutPolicy":
        return cls(
            store,
            max_failed_attempts=config.lockout_max_failed_attempts,
            lock_duration=timedelta(minutes=config.lockout_duration_minutes),
        )

    def now(self) -> datetime:
        return self._clock()

    async def record_failed_attempt(self, account: Account) -> bool:
        """Count a failed login; lock the account once the threshold is reached.

        Committed on its own, so the evidence survives the failing login.
        Returns True if the account is locked after this attempt.
        """
        record = await self._store.increment_failed_attempts(
            account.id,
            threshold=self.max_failed_attempts,
            lock_until=self.now() + self.lock_duration,
        )
        if record is None:
            logger.warning(f"Failed attempt for vanished account {account.id}")
            return False

        newly_locked = record.account_locked and record.locked_until != account.locked_until
        account.failed_login_attempts = record.failed_login_attempts
        account.account_locked = record.account_locked
        account.locked_until = record.locked_until

        if newly_locked:
            logger.warning(
                f"Account {account.id} locked until {record.locked_until.isoformat()} "
                f"after {record.failed_login_attempts} failed attempts"
            )
        return self.is_currently_locked(account)

    def is_currently_locked(self, account: Account) -> bool:
        """True while a lock is set and has not yet lapsed.

        A lapsed lock counts as unlocked even though the flag stays set
        until the next successful login clears it.
        """
        return (
            account.account_locked
            and account.locked_until is not None
            and account.locked_until > self.now()
        )

    async def clear_on_success(self, account: Account) -> None:
        """Reset failure state and stamp the login time."""
        login_at = self.now()
        await self._store.reset_failed_attempts(account.id, login_at)
        account.failed_login_attempts = 0
        account.account_locked = False
        account.locked_until = None
        account.last_login_at = login_at
