"""Tests for profile reads and partial updates."""

import uuid

import pytest

from registration.services.errors import AccountNotFound, ValidationError
from registration.services.mappers import ProfilePatch


@pytest.mark.asyncio
async def test_get_profile(auth_engine, account_factory):
    account = await account_factory(locale="en-GB", timezone="Europe/London")

    profile = await auth_engine.get_profile(account.id)

    assert profile.id == account.id
    assert profile.username == "grace"
    assert profile.locale == "en-GB"
    assert profile.timezone == "Europe/London"


@pytest.mark.asyncio
async def test_get_profile_unknown(auth_engine):
    with pytest.raises(AccountNotFound):
        await auth_engine.get_profile(uuid.uuid4())


@pytest.mark.asyncio
async def test_get_profile_by_email_skips_disabled(auth_engine, account_factory):
    await account_factory(account_enabled=False)

    with pytest.raises(AccountNotFound):
        await auth_engine.get_profile_by_email("grace@example.com")


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields(auth_engine, store, account_factory):
    account = await account_factory(phone="+14155550100")

    profile = await auth_engine.update_profile(
        account.id,
        ProfilePatch(first_name="Amazing", timezone="America/New_York"),
    )

    assert profile.first_name == "Amazing"
    assert profile.timezone == "America/New_York"
    assert profile.last_name == "Hopper"
    assert profile.phone == "+14155550100"
    assert profile.email == "grace@example.com"

    stored = await store.get_by_id(account.id)
    assert stored.password_hash == account.password_hash
    assert stored.failed_login_attempts == 0


@pytest.mark.asyncio
async def test_empty_patch_is_a_no_op(auth_engine, account_factory):
    account = await account_factory()

    profile = await auth_engine.update_profile(account.id, ProfilePatch())

    assert profile.first_name == "Grace"


@pytest.mark.asyncio
async def test_change_username(auth_engine, account_factory):
    account = await account_factory()

    profile = await auth_engine.update_profile(account.id, ProfilePatch(username="admiral"))

    assert profile.username == "admiral"


@pytest.mark.asyncio
async def test_keeping_own_username_is_allowed(auth_engine, account_factory):
    account = await account_factory()

    profile = await auth_engine.update_profile(account.id, ProfilePatch(username="grace"))

    assert profile.username == "grace"


@pytest.mark.asyncio
async def test_username_taken(auth_engine, account_factory):
    await account_factory(email="ada@example.com", username="ada")
    account = await account_factory()

    with pytest.raises(ValidationError) as exc_info:
        await auth_engine.update_profile(account.id, ProfilePatch(username="ada"))
    assert exc_info.value.field_errors == {"username": "Username is already taken"}


@pytest.mark.asyncio
async def test_invalid_fields(auth_engine, account_factory):
    account = await account_factory()

    with pytest.raises(ValidationError) as exc_info:
        await auth_engine.update_profile(
            account.id,
            ProfilePatch(
                phone="12",
                profile_picture_url="ftp://example.com/me.png",
                timezone="Mars/Olympus_Mons",
            ),
        )
    assert set(exc_info.value.field_errors) == {"phone", "profile_picture_url", "timezone"}


@pytest.mark.asyncio
async def test_update_unknown_account(auth_engine):
    with pytest.raises(AccountNotFound):
        await auth_engine.update_profile(uuid.uuid4(), ProfilePatch(first_name="Nobody"))
