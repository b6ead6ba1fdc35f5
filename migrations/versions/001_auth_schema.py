"""Create authentication tables: users, oauth_accounts, verification_tokens.

Revision ID: 001_auth_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_auth_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Users. password_hash is NULL for OAuth-only accounts.
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("nickname", sa.String(100), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_user_email", "users", ["email"], unique=True)

    # Linked external identities
    op.create_table(
        "oauth_accounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("provider_id", sa.String(255), nullable=False),
        sa.Column("oauth_email", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "provider", "provider_id", name="uq_oauth_accounts_provider_identity"
        ),
        sa.UniqueConstraint(
            "user_id", "provider", name="uq_oauth_accounts_user_provider"
        ),
        sa.CheckConstraint(
            "provider IN ('google', 'apple', 'discord', 'kakao')",
            name="ck_oauth_accounts_provider",
        ),
    )
    op.create_index("ix_oauth_accounts_user_id", "oauth_accounts", ["user_id"])

    # Email verification tokens (SHA-256 hashes only)
    op.create_table(
        "verification_tokens",
        sa.Column("identifier", sa.String(255), primary_key=True),
        sa.Column("token", sa.String(255), primary_key=True),
        sa.Column("expires", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_verification_tokens_token", "verification_tokens", ["token"]
    )


def downgrade() -> None:
    op.drop_table("verification_tokens")
    op.drop_table("oauth_accounts")
    op.drop_table("users")
