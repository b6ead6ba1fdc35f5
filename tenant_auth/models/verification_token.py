"""Verification token model - email confirmation tokens.

Opaque, possession-only tokens. Only the SHA-256 hash is stored.
No id column: looked up by (identifier, token) composite key.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from tenant_auth.models.base import Base


class VerificationToken(Base):
    """Email verification token.

    Entries are single-use and time-limited. Deleted after use.

    Attributes:
        identifier: Email address the token confirms.
        token: Hashed token value.
        expires: Token expiry timestamp.
    """

    __tablename__ = "verification_tokens"

    identifier: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        primary_key=True,
    )
    token: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        primary_key=True,
        index=True,
    )
    expires: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
