"""Tests for federated (external identity provider) login."""

import pytest

from registration.services.errors import InvalidCredentials
from registration.services.mappers import FederatedIdentity
from tests.conftest import TEST_PASSWORD


def google_identity(**overrides) -> FederatedIdentity:
    values = {
        "email": "Ada.Lovelace@example.com",
        "display_name": "Ada King Lovelace",
        "provider_subject_id": "google-sub-123",
    }
    values.update(overrides)
    return FederatedIdentity(**values)


@pytest.mark.asyncio
async def test_creates_verified_account(auth_engine, store, codec):
    result = await auth_engine.federated_login(google_identity())

    assert result.profile.email == "ada.lovelace@example.com"
    assert result.profile.email_verified is True
    assert result.profile.first_name == "Ada"
    assert result.profile.last_name == "King Lovelace"
    assert result.profile.username == "adalovelace"
    assert codec.subject_of(result.token) == "ada.lovelace@example.com"

    account = await store.get_by_id(result.profile.id)
    assert account.password_hash == ""
    assert account.oauth_provider == "google"
    assert account.oauth_provider_id == "google-sub-123"


@pytest.mark.asyncio
async def test_reuses_linked_account(auth_engine):
    first = await auth_engine.federated_login(google_identity())
    second = await auth_engine.federated_login(google_identity(email="changed@example.com"))

    assert second.profile.id == first.profile.id


@pytest.mark.asyncio
async def test_links_existing_password_account(auth_engine, store, account_factory):
    account = await account_factory(email="grace@example.com")

    result = await auth_engine.federated_login(
        google_identity(email="GRACE@example.com", provider_subject_id="google-sub-999")
    )

    assert result.profile.id == account.id
    assert result.profile.email_verified is True
    stored = await store.get_by_id(account.id)
    assert stored.oauth_provider_id == "google-sub-999"

    # Password login keeps working for the linked account
    password_login = await auth_engine.login("grace@example.com", TEST_PASSWORD)
    assert password_login.profile.id == account.id


@pytest.mark.asyncio
async def test_generated_username_avoids_collisions(auth_engine, account_factory):
    await account_factory(email="someone@example.com", username="adalovelace")

    result = await auth_engine.federated_login(google_identity())

    assert result.profile.username == "adalovelace1"


@pytest.mark.asyncio
async def test_clears_failure_state(auth_engine, store, account_factory):
    account = await account_factory(failed_login_attempts=3)

    await auth_engine.federated_login(google_identity(email="grace@example.com"))

    assert (await store.get_by_id(account.id)).failed_login_attempts == 0


@pytest.mark.asyncio
async def test_disabled_account_matched_by_email_is_refused(auth_engine, store, account_factory):
    account = await account_factory(account_enabled=False, failed_login_attempts=2)

    with pytest.raises(InvalidCredentials):
        await auth_engine.federated_login(
            google_identity(email="grace@example.com", provider_subject_id="sub-1")
        )

    stored = await store.get_by_id(account.id)
    assert stored.oauth_provider_id is None
    assert stored.email_verified is False
    assert stored.failed_login_attempts == 2
    assert await store.get_by_provider_identity("google", "sub-1") is None


@pytest.mark.asyncio
async def test_disabled_account_linked_by_provider_is_refused(auth_engine, store, account_factory):
    account = await account_factory(
        account_enabled=False,
        oauth_provider="google",
        oauth_provider_id="sub-1",
        failed_login_attempts=2,
    )

    with pytest.raises(InvalidCredentials):
        await auth_engine.federated_login(
            google_identity(email="someone-else@example.com", provider_subject_id="sub-1")
        )

    stored = await store.get_by_id(account.id)
    assert stored.failed_login_attempts == 2
    assert stored.last_login_at is None
    # No replacement account was created for the refused identity
    assert await store.get_by_email("someone-else@example.com") is None
