"""Password credential validation and changes.

Pipeline:
- hash_password / verify_password: bcrypt primitives (constant-time compare)
- validate_credentials: email + password check that never raises
- change_secret: persist a new password, optionally confirming the current one
- verify_current_secret: mandatory confirmation for destructive operations

Plaintext passwords and hashes are never logged or returned.
"""

import logging
from functools import lru_cache

import bcrypt

from tenant_auth.core.config import settings
from tenant_auth.core.errors import (
    InvalidCurrentPasswordError,
    PasswordNotSetError,
    UnknownAccountError,
    ValidationError,
)
from tenant_auth.models.user import User
from tenant_auth.services.account_store import AccountStore

logger = logging.getLogger(__name__)

# bcrypt reads at most 72 bytes; bcrypt>=5 raises on anything longer
MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    """True if the UTF-8 encoding exceeds what bcrypt accepts."""
    return len(plain.encode()) > MAX_PASSWORD_BYTES


@lru_cache(maxsize=1)
def _dummy_hash() -> bytes:
    """bcrypt hash compared against when no real hash exists.

    Security: keeps response time the same whether or not the account
    exists. Uses the configured work factor so timings match real hashes.
    """
    return bcrypt.hashpw(b"dummy-password-for-timing", bcrypt.gensalt(settings.bcrypt_rounds))


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Hash a password with bcrypt.

    Args:
        plain: Plain-text password.
        rounds: bcrypt cost factor. Defaults to settings.bcrypt_rounds.

    Returns:
        bcrypt hash as a str.

    Raises:
        ValidationError: If the password is longer than 72 bytes.
    """
    if password_too_long(plain):
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode(), salt).decode()


def verify_password(plain: str, hashed: str) -> bool:
    """Compare a plain-text password against a bcrypt hash.

    Args:
        plain: Candidate password.
        hashed: Stored bcrypt hash.

    Returns:
        True on match. False on mismatch, an over-length candidate or a
        malformed stored hash.
    """
    if password_too_long(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


async def validate_credentials(store: AccountStore, email: str, candidate: str) -> bool:
    """Check an email + password pair.

    Returns False (never raises) when the account does not exist or has
    no password (OAuth-only accounts).

    Args:
        store: Account store.
        email: Account email.
        candidate: Password to check.

    Returns:
        True if the password matches the stored hash.
    """
    user = await store.find_by_email(email)
    if user is None or not user.password_hash:
        bcrypt.checkpw(candidate.encode()[:MAX_PASSWORD_BYTES], _dummy_hash())
        return False
    return verify_password(candidate, user.password_hash)


async def change_secret(
    store: AccountStore,
    user_id: int,
    new_secret: str,
    current_secret: str | None = None,
) -> User:
    """Set a new password for an account.

    When current_secret is supplied it must match before anything is
    written. Callers that already proved authority (password-reset token)
    pass None.

    Args:
        store: Account store.
        user_id: Account to update.
        new_secret: New plain-text password.
        current_secret: Current password, if the caller must confirm it.

    Returns:
        The updated account.

    Raises:
        UnknownAccountError: If the account does not exist.
        InvalidCurrentPasswordError: If current_secret does not match.
    """
    user = await store.find_by_id(user_id)
    if user is None:
        raise UnknownAccountError()

    if current_secret is not None and (
        not user.password_hash or not verify_password(current_secret, user.password_hash)
    ):
        raise InvalidCurrentPasswordError()

    updated = await store.update(user_id, password_hash=hash_password(new_secret))
    if updated is None:
        raise UnknownAccountError()

    logger.info("Password changed", extra={"user_id": user_id})
    return updated


async def verify_current_secret(store: AccountStore, user_id: int, secret: str) -> User:
    """Require the current password before a destructive operation.

    Args:
        store: Account store.
        user_id: Account performing the operation.
        secret: Current password as entered by the user.

    Returns:
        The verified account.

    Raises:
        UnknownAccountError: If the account does not exist.
        PasswordNotSetError: If the account has no password.
        InvalidCurrentPasswordError: If the password does not match.
    """
    user = await store.find_by_id(user_id)
    if user is None:
        raise UnknownAccountError()
    if not user.password_hash:
        raise PasswordNotSetError()
    if not verify_password(secret, user.password_hash):
        raise InvalidCurrentPasswordError()
    return user
