"""Tests for AccountStore persistence."""

import uuid
from datetime import datetime

import pytest
from sqlalchemy.exc import StatementError

from registration.models import Account
from registration.services.accounts import DuplicateKeyError


@pytest.mark.asyncio
async def test_add_assigns_id_and_timestamps(account_factory):
    account = await account_factory()

    assert isinstance(account.id, uuid.UUID)
    assert account.created_at is not None
    assert account.created_at.tzinfo is not None
    assert account.updated_at is not None


@pytest.mark.asyncio
async def test_duplicate_email(account_factory):
    await account_factory()

    with pytest.raises(DuplicateKeyError) as exc_info:
        await account_factory(username="other")
    assert exc_info.value.field == "email"


@pytest.mark.asyncio
async def test_duplicate_username(account_factory):
    await account_factory()

    with pytest.raises(DuplicateKeyError) as exc_info:
        await account_factory(email="other@example.com")
    assert exc_info.value.field == "username"


@pytest.mark.asyncio
async def test_duplicate_provider_identity(account_factory):
    await account_factory(oauth_provider="google", oauth_provider_id="sub-1")

    with pytest.raises(DuplicateKeyError) as exc_info:
        await account_factory(
            email="other@example.com",
            username="other",
            oauth_provider="google",
            oauth_provider_id="sub-1",
        )
    assert exc_info.value.field == "oauth_provider_id"


@pytest.mark.asyncio
async def test_lookups(store, account_factory):
    account = await account_factory(oauth_provider="google", oauth_provider_id="sub-1")

    assert (await store.get_by_id(account.id)).email == "grace@example.com"
    assert (await store.get_by_email("grace@example.com")).id == account.id
    assert (await store.get_by_provider_identity("google", "sub-1")).id == account.id
    assert await store.get_by_provider_identity("github", "sub-1") is None
    assert await store.get_by_id(uuid.uuid4()) is None
    assert await store.exists_by_email("grace@example.com") is True
    assert await store.exists_by_email("nobody@example.com") is False


@pytest.mark.asyncio
async def test_disabled_accounts_invisible_to_login_lookup(store, account_factory):
    await account_factory(account_enabled=False)

    assert await store.get_enabled_by_email("grace@example.com") is None
    assert await store.get_by_email("grace@example.com") is not None


@pytest.mark.asyncio
async def test_exists_by_username_can_exclude_self(store, account_factory):
    account = await account_factory()

    assert await store.exists_by_username("grace") is True
    assert await store.exists_by_username("grace", exclude_id=account.id) is False


@pytest.mark.asyncio
async def test_update_fields(store, account_factory):
    account = await account_factory()

    updated = await store.update_fields(account.id, {"first_name": "Amazing", "locale": "en-US"})

    assert updated.first_name == "Amazing"
    assert updated.locale == "en-US"
    assert updated.email == "grace@example.com"


@pytest.mark.asyncio
async def test_update_fields_unknown_account(store):
    assert await store.update_fields(uuid.uuid4(), {"first_name": "Nobody"}) is None


@pytest.mark.asyncio
async def test_update_fields_username_collision(store, account_factory):
    await account_factory()
    other = await account_factory(email="ada@example.com", username="ada")

    with pytest.raises(DuplicateKeyError) as exc_info:
        await store.update_fields(other.id, {"username": "grace"})
    assert exc_info.value.field == "username"


@pytest.mark.asyncio
async def test_increment_unknown_account(store, clock):
    record = await store.increment_failed_attempts(uuid.uuid4(), 5, clock.utcnow())
    assert record is None


@pytest.mark.asyncio
async def test_naive_datetimes_rejected(store):
    account = Account(
        email="naive@example.com",
        username="naive",
        last_login_at=datetime(2026, 1, 1, 12, 0),
    )
    with pytest.raises(StatementError, match="naive datetime"):
        await store.add(account)
