"""Account store contract and its SQLAlchemy implementation.

The authentication core never touches the database directly: it talks to
an AccountStore. SqlAccountStore adapts the repositories to that contract
for one request-scoped AsyncSession. Durability and per-row concurrency
control belong to the database.
"""

import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_auth.core.errors import AccountConflictError
from tenant_auth.models.oauth_account import OAuthAccount
from tenant_auth.models.user import User
from tenant_auth.repositories.oauth_account_repository import OAuthAccountRepository
from tenant_auth.repositories.user_repository import UserRepository
from tenant_auth.repositories.verification_token_repository import (
    VerificationTokenRepository,
)

logger = logging.getLogger(__name__)


class AccountStore(Protocol):
    """Persistence operations the authentication core depends on."""

    async def find_by_email(self, email: str) -> User | None: ...

    async def find_by_id(self, user_id: int) -> User | None: ...

    async def find_by_external_identity(
        self, provider: str, provider_id: str
    ) -> User | None: ...

    async def create(
        self,
        *,
        email: str,
        nickname: str,
        password_hash: str | None = None,
        verified: bool = False,
    ) -> User: ...

    async def update(self, user_id: int, **fields: str | bool | None) -> User | None: ...

    async def delete(self, user_id: int) -> bool: ...

    async def list_identities(self, user_id: int) -> list[OAuthAccount]: ...

    async def link_identity(
        self,
        user_id: int,
        *,
        provider: str,
        provider_id: str,
        oauth_email: str | None,
    ) -> OAuthAccount: ...

    async def unlink_identity(self, user_id: int, provider: str) -> bool: ...

    async def save_verification_token(
        self, *, email: str, token_hash: str, expires: datetime
    ) -> None: ...

    async def consume_verification_token(self, token_hash: str) -> str | None: ...


class SqlAccountStore:
    """AccountStore backed by PostgreSQL through the repositories.

    Args:
        db: Request-scoped async session. The caller (get_db) commits.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_email(self, email: str) -> User | None:
        return await UserRepository.get_by_email(self.db, email)

    async def find_by_id(self, user_id: int) -> User | None:
        return await UserRepository.get_by_id(self.db, user_id)

    async def find_by_external_identity(
        self, provider: str, provider_id: str
    ) -> User | None:
        return await UserRepository.get_by_oauth_identity(
            self.db, provider, provider_id
        )

    async def create(
        self,
        *,
        email: str,
        nickname: str,
        password_hash: str | None = None,
        verified: bool = False,
    ) -> User:
        """Create a user, mapping the unique-email violation to a conflict.

        Raises:
            AccountConflictError: If the email is already registered.
        """
        try:
            return await UserRepository.create(
                self.db,
                email=email,
                nickname=nickname,
                password_hash=password_hash,
                verified=verified,
            )
        except IntegrityError as exc:
            await self.db.rollback()
            raise AccountConflictError() from exc

    async def update(self, user_id: int, **fields: str | bool | None) -> User | None:
        return await UserRepository.update(self.db, user_id, **fields)

    async def delete(self, user_id: int) -> bool:
        return await UserRepository.delete(self.db, user_id)

    async def list_identities(self, user_id: int) -> list[OAuthAccount]:
        return await OAuthAccountRepository.list_by_user_id(self.db, user_id)

    async def link_identity(
        self,
        user_id: int,
        *,
        provider: str,
        provider_id: str,
        oauth_email: str | None,
    ) -> OAuthAccount:
        """Link an external identity to a user.

        Raises:
            AccountConflictError: If the identity is owned by another user or
                the user already has an identity for this provider.
        """
        try:
            return await OAuthAccountRepository.create(
                self.db,
                user_id=user_id,
                provider=provider,
                provider_id=provider_id,
                oauth_email=oauth_email,
            )
        except IntegrityError as exc:
            await self.db.rollback()
            logger.warning(
                "OAuth identity link rejected by unique constraint",
                extra={"user_id": user_id, "provider": provider},
            )
            raise AccountConflictError(
                f"This {provider} account is already linked"
            ) from exc

    async def unlink_identity(self, user_id: int, provider: str) -> bool:
        deleted = await OAuthAccountRepository.delete_for_provider(
            self.db, user_id, provider
        )
        return deleted > 0

    async def save_verification_token(
        self, *, email: str, token_hash: str, expires: datetime
    ) -> None:
        await VerificationTokenRepository.create(
            self.db,
            identifier=email,
            token_hash=token_hash,
            expires=expires,
        )

    async def consume_verification_token(self, token_hash: str) -> str | None:
        """Return the email for a live token and delete all of its tokens.

        Returns:
            The confirmed email, or None if the token is unknown or expired.
        """
        record = await VerificationTokenRepository.get_by_hash(self.db, token_hash)
        if record is None:
            return None
        email = record.identifier
        await VerificationTokenRepository.delete_all_for_identifier(
            self.db, identifier=email
        )
        return email
