"""User model - the account every credential belongs to."""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenant_auth.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from tenant_auth.models.oauth_account import OAuthAccount


class User(Base, TimestampMixin):
    """User account for authentication.

    Invariant (enforced by AuthService, not the schema): a user with no
    linked OAuth accounts has a non-null password_hash.

    Attributes:
        id: Integer primary key.
        email: Unique email address, stored lowercase.
        password_hash: bcrypt hash. NULL for OAuth-only users.
        nickname: Display name, generated at creation.
        verified: Whether the email address has been confirmed.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
        oauth_accounts: Linked external identities.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    nickname: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )

    # Relationships
    oauth_accounts: Mapped[list["OAuthAccount"]] = relationship(
        "OAuthAccount",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
