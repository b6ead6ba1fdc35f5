"""Tests for SqlAccountStore and the repositories behind it.

Runs against PostgreSQL; skipped automatically when it is not reachable.
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_auth.core.errors import AccountConflictError
from tenant_auth.repositories.user_repository import UserRepository
from tenant_auth.services.account_store import SqlAccountStore


@pytest.fixture
def sql_store(db_session: AsyncSession) -> SqlAccountStore:
    return SqlAccountStore(db_session)


class TestUsers:
    async def test_create_normalizes_email(self, sql_store):
        user = await sql_store.create(email=" Mixed@Example.COM ", nickname="Calm1")
        assert user.email == "mixed@example.com"
        assert user.verified is False
        assert user.created_at is not None

    async def test_find_by_email_is_case_insensitive(self, sql_store):
        user = await sql_store.create(email="a@x.com", nickname="Calm1")
        assert (await sql_store.find_by_email("A@X.COM")).id == user.id

    async def test_duplicate_email_is_a_conflict(self, sql_store):
        await sql_store.create(email="a@x.com", nickname="Calm1")
        with pytest.raises(AccountConflictError):
            await sql_store.create(email="a@x.com", nickname="Calm2")

    async def test_update_rejects_unknown_fields(self, db_session, sql_store):
        user = await sql_store.create(email="a@x.com", nickname="Calm1")
        with pytest.raises(ValueError):
            await UserRepository.update(db_session, user.id, email="b@x.com")

    async def test_update_and_delete(self, sql_store):
        user = await sql_store.create(email="a@x.com", nickname="Calm1")
        updated = await sql_store.update(user.id, nickname="Witty2", verified=True)
        assert updated.nickname == "Witty2"
        assert updated.verified is True
        assert await sql_store.delete(user.id) is True
        assert await sql_store.find_by_id(user.id) is None
        assert await sql_store.delete(user.id) is False


class TestIdentities:
    async def test_link_and_find(self, sql_store):
        user = await sql_store.create(email="a@x.com", nickname="Calm1")
        await sql_store.link_identity(
            user.id, provider="google", provider_id="g-1", oauth_email="a@gmail.com"
        )
        found = await sql_store.find_by_external_identity("google", "g-1")
        assert found.id == user.id
        assert [i.provider for i in await sql_store.list_identities(user.id)] == ["google"]

    async def test_identity_owned_once(self, sql_store):
        first = await sql_store.create(email="a@x.com", nickname="Calm1")
        second = await sql_store.create(email="b@x.com", nickname="Calm2")
        await sql_store.link_identity(
            first.id, provider="google", provider_id="g-1", oauth_email=None
        )
        with pytest.raises(AccountConflictError):
            await sql_store.link_identity(
                second.id, provider="google", provider_id="g-1", oauth_email=None
            )

    async def test_unlink(self, sql_store):
        user = await sql_store.create(email="a@x.com", nickname="Calm1")
        await sql_store.link_identity(
            user.id, provider="kakao", provider_id="k-1", oauth_email=None
        )
        assert await sql_store.unlink_identity(user.id, "kakao") is True
        assert await sql_store.unlink_identity(user.id, "kakao") is False
        assert await sql_store.list_identities(user.id) == []


class TestVerificationTokens:
    async def test_consume_once(self, sql_store):
        await sql_store.save_verification_token(
            email="a@x.com",
            token_hash="h1",
            expires=datetime.now(UTC) + timedelta(hours=1),
        )
        assert await sql_store.consume_verification_token("h1") == "a@x.com"
        assert await sql_store.consume_verification_token("h1") is None

    async def test_expired_token(self, sql_store):
        await sql_store.save_verification_token(
            email="a@x.com",
            token_hash="h2",
            expires=datetime.now(UTC) - timedelta(seconds=1),
        )
        assert await sql_store.consume_verification_token("h2") is None
