"""Repository for OAuthAccount CRUD operations.

Provides database access for the oauth_accounts table.
Follows the repository pattern established by UserRepository.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_auth.models.oauth_account import OAuthAccount


class OAuthAccountRepository:
    """Stateless repository for OAuthAccount table operations.

    All methods are static with no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: int,
        provider: str,
        provider_id: str,
        oauth_email: str | None = None,
    ) -> OAuthAccount:
        """Create a record linking a provider identity to a user.

        Args:
            db: Async database session.
            user_id: FK to users table.
            provider: Provider name ("google", "apple", ...).
            provider_id: Provider's unique user identifier.
            oauth_email: Email reported by the provider.

        Returns:
            Created OAuthAccount with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If the identity is already linked,
                or the user already has an identity for this provider.
        """
        account = OAuthAccount(
            user_id=user_id,
            provider=provider,
            provider_id=provider_id,
            oauth_email=oauth_email,
        )
        db.add(account)
        await db.flush()
        await db.refresh(account)
        return account

    @staticmethod
    async def list_by_user_id(
        db: AsyncSession,
        user_id: int,
    ) -> list[OAuthAccount]:
        """List all identities linked to a user.

        Args:
            db: Async database session.
            user_id: ID of the user.

        Returns:
            List of OAuthAccount records (may be empty).
        """
        stmt = select(OAuthAccount).where(OAuthAccount.user_id == user_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def delete_for_provider(
        db: AsyncSession,
        user_id: int,
        provider: str,
    ) -> int:
        """Remove a user's identity for one provider.

        Args:
            db: Async database session.
            user_id: ID of the user.
            provider: Provider name.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(OAuthAccount).where(
            OAuthAccount.user_id == user_id,
            OAuthAccount.provider == provider,
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
