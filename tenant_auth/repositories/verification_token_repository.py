"""Repository for VerificationToken CRUD operations.

Single-use email verification tokens stored as hashed values and
looked up by hash alone, with time-limited expiry.
"""

from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_auth.models.verification_token import VerificationToken


class VerificationTokenRepository:
    """Stateless repository for VerificationToken table operations.

    All methods are static with no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        identifier: str,
        token_hash: str,
        expires: datetime,
    ) -> VerificationToken:
        """Store a new verification token.

        Args:
            db: Async database session.
            identifier: Email address.
            token_hash: SHA-256 hash of the plain token.
            expires: Token expiry timestamp.

        Returns:
            Created VerificationToken.
        """
        vt = VerificationToken(
            identifier=identifier,
            token=token_hash,
            expires=expires,
        )
        db.add(vt)
        await db.flush()
        return vt

    @staticmethod
    async def get_by_hash(
        db: AsyncSession,
        token_hash: str,
    ) -> VerificationToken | None:
        """Look up an unexpired token by its hash.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the plain token.

        Returns:
            VerificationToken if found and unexpired, None otherwise.
        """
        stmt = select(VerificationToken).where(
            VerificationToken.token == token_hash,
            VerificationToken.expires > datetime.now(UTC),
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def delete_all_for_identifier(
        db: AsyncSession,
        *,
        identifier: str,
    ) -> None:
        """Delete all tokens for an identifier (cleanup on successful verify).

        Args:
            db: Async database session.
            identifier: Email address.
        """
        stmt = delete(VerificationToken).where(
            VerificationToken.identifier == identifier,
        )
        await db.execute(stmt)
