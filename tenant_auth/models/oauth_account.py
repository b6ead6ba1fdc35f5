"""OAuthAccount model - external identities linked to a user.

One row per (user, provider). A provider-side identity can belong to
at most one user.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenant_auth.models.base import Base

if TYPE_CHECKING:
    from tenant_auth.models.user import User


class OAuthAccount(Base):
    """External identity provider connection for a user.

    Attributes:
        id: Integer primary key.
        user_id: FK to users table.
        provider: Provider name ("google", "apple", "discord", "kakao").
        provider_id: Provider's unique user ID.
        oauth_email: Email reported by the provider.
        created_at: Record creation timestamp.
    """

    __tablename__ = "oauth_accounts"
    __table_args__ = (
        UniqueConstraint(
            "provider", "provider_id", name="uq_oauth_accounts_provider_identity"
        ),
        UniqueConstraint("user_id", "provider", name="uq_oauth_accounts_user_provider"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(255), nullable=False)
    oauth_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="oauth_accounts")
