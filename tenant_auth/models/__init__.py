"""SQLAlchemy ORM models.

All models are exported from this module for convenient imports:
    from tenant_auth.models import User, OAuthAccount, VerificationToken

- user.py: User
- oauth_account.py: OAuthAccount (linked external identities)
- verification_token.py: VerificationToken (email confirmation, composite PK)
"""

from tenant_auth.models.base import Base, TimestampMixin
from tenant_auth.models.oauth_account import OAuthAccount
from tenant_auth.models.user import User
from tenant_auth.models.verification_token import VerificationToken

__all__ = [
    "Base",
    "OAuthAccount",
    "TimestampMixin",
    "User",
    "VerificationToken",
]
