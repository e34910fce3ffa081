"""Tests for the lockout policy and the atomic failure counter."""

import asyncio
import uuid
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from registration.models import Account
from registration.services.lockout import LockoutPolicy


@pytest.mark.asyncio
async def test_counts_failures_below_threshold(policy, store, account_factory):
    account = await account_factory()

    for expected in range(1, 5):
        locked = await policy.record_failed_attempt(account)
        assert locked is False
        assert account.failed_login_attempts == expected

    stored = await store.get_by_id(account.id)
    assert stored.failed_login_attempts == 4
    assert stored.account_locked is False
    assert stored.locked_until is None


@pytest.mark.asyncio
async def test_locks_at_threshold(policy, store, account_factory, clock):
    account = await account_factory(failed_login_attempts=4)

    locked = await policy.record_failed_attempt(account)

    assert locked is True
    assert account.account_locked is True
    assert account.locked_until == clock.utcnow() + timedelta(hours=24)
    stored = await store.get_by_id(account.id)
    assert stored.account_locked is True
    assert stored.locked_until == account.locked_until
    assert stored.failed_login_attempts == 5


@pytest.mark.asyncio
async def test_lock_lapses(policy, account_factory, clock):
    account = await account_factory(failed_login_attempts=4)
    await policy.record_failed_attempt(account)

    clock.advance(hours=23, minutes=59)
    assert policy.is_currently_locked(account) is True

    clock.advance(minutes=1)
    assert policy.is_currently_locked(account) is False


@pytest.mark.asyncio
async def test_clear_on_success_resets_state(policy, store, account_factory, clock):
    account = await account_factory(failed_login_attempts=4)
    await policy.record_failed_attempt(account)

    await policy.clear_on_success(account)

    stored = await store.get_by_id(account.id)
    assert stored.failed_login_attempts == 0
    assert stored.account_locked is False
    assert stored.locked_until is None
    assert stored.last_login_at == clock.utcnow()
    assert policy.is_currently_locked(account) is False


@pytest.mark.asyncio
async def test_parallel_failures_are_all_counted(store, account_factory):
    """K concurrent failures raise the counter by exactly K."""
    account = await account_factory()
    policy = LockoutPolicy(store, max_failed_attempts=100)

    results = await asyncio.gather(*(policy.record_failed_attempt(account) for _ in range(10)))

    assert results == [False] * 10
    stored = await store.get_by_id(account.id)
    assert stored.failed_login_attempts == 10


@pytest.mark.asyncio
async def test_vanished_account(policy):
    ghost = Account(email="ghost@example.com", username="ghost")
    ghost.id = uuid.uuid4()

    assert await policy.record_failed_attempt(ghost) is False


def test_rejects_invalid_configuration():
    store = MagicMock()
    with pytest.raises(ValueError):
        LockoutPolicy(store, max_failed_attempts=0)
    with pytest.raises(ValueError):
        LockoutPolicy(store, lock_duration=timedelta(0))
