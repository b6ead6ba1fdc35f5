"""Signed token issuance and verification.

Three token kinds share one mechanism (HS256 JWT) but never one policy:

- access: session credential, {sub, email, nickname}, configured lifetime
- oauth-link-state: ties an OAuth round-trip to an account, {userId,
  provider, oauthMethod="connect"}, 5 minutes
- password-reset: authorizes a credential change, {email}, 1 hour

Every token carries its kind in the ``type`` claim, and each kind is
verified under its own secret. The reset secret is always distinct from
the access secret.

Security: verify() collapses every failure (bad signature, expired,
wrong secret, wrong kind, malformed payload) into one opaque
InvalidOrExpiredTokenError so callers cannot tell why a token failed.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import jwt

from tenant_auth.core.config import Settings, settings
from tenant_auth.core.errors import InvalidOrExpiredTokenError
from tenant_auth.core.oauth import OAuthProvider, parse_provider
from tenant_auth.models.user import User

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"

_OAUTH_LINK_STATE_TTL = timedelta(minutes=5)
_PASSWORD_RESET_TTL = timedelta(hours=1)

# Only value of oauthMethod a link-state token can carry
_CONNECT = "connect"


class TokenKind(str, Enum):
    """Purpose discriminant stored in the ``type`` claim."""

    ACCESS = "access"
    OAUTH_LINK_STATE = "oauth-link-state"
    PASSWORD_RESET = "password-reset"


@dataclass(frozen=True)
class AccessTokenPayload:
    """Decoded access token."""

    user_id: int
    email: str
    nickname: str


@dataclass(frozen=True)
class OAuthLinkStatePayload:
    """Decoded OAuth-link-state token."""

    user_id: int
    provider: OAuthProvider
    operation: str = _CONNECT


@dataclass(frozen=True)
class PasswordResetPayload:
    """Decoded password-reset token."""

    email: str


TokenPayload = AccessTokenPayload | OAuthLinkStatePayload | PasswordResetPayload


def _require_str(claims: dict[str, Any], key: str) -> str:
    value = claims.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(key)
    return value


def _require_int(claims: dict[str, Any], key: str) -> int:
    value = claims.get(key)
    # bool is an int subclass; a True userId is never legitimate
    if isinstance(value, bool):
        raise ValueError(key)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise ValueError(key)


def _decode_access(claims: dict[str, Any]) -> AccessTokenPayload:
    return AccessTokenPayload(
        user_id=_require_int(claims, "sub"),
        email=_require_str(claims, "email"),
        nickname=_require_str(claims, "nickname"),
    )


def _decode_oauth_link_state(claims: dict[str, Any]) -> OAuthLinkStatePayload:
    if claims.get("oauthMethod") != _CONNECT:
        raise ValueError("oauthMethod")
    return OAuthLinkStatePayload(
        user_id=_require_int(claims, "userId"),
        provider=OAuthProvider(_require_str(claims, "provider")),
    )


def _decode_password_reset(claims: dict[str, Any]) -> PasswordResetPayload:
    return PasswordResetPayload(email=_require_str(claims, "email"))


_DECODERS: dict[TokenKind, Callable[[dict[str, Any]], TokenPayload]] = {
    TokenKind.ACCESS: _decode_access,
    TokenKind.OAUTH_LINK_STATE: _decode_oauth_link_state,
    TokenKind.PASSWORD_RESET: _decode_password_reset,
}


class TokenCodec:
    """Issue and verify purpose-scoped signed tokens.

    Immutable after construction; safe to share across requests.

    Args:
        access_secret: Secret for access tokens.
        reset_secret: Secret for password-reset tokens. Must differ from
            access_secret.
        access_ttl: Access token lifetime.
        state_secret: Secret for OAuth-link-state tokens. Defaults to
            access_secret.
        state_ttl: OAuth-link-state lifetime (default 5 minutes).
        reset_ttl: Password-reset lifetime (default 1 hour).
        clock: Returns the current UTC time. Overridable for tests.

    Raises:
        ValueError: If access_secret and reset_secret are equal.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        reset_secret: str,
        access_ttl: timedelta,
        state_secret: str | None = None,
        state_ttl: timedelta = _OAUTH_LINK_STATE_TTL,
        reset_ttl: timedelta = _PASSWORD_RESET_TTL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not access_secret or not reset_secret:
            msg = "Token signing secrets must not be empty"
            raise ValueError(msg)
        if access_secret == reset_secret:
            msg = "Password-reset tokens must be signed with a different secret"
            raise ValueError(msg)
        self._secrets = {
            TokenKind.ACCESS: access_secret,
            TokenKind.OAUTH_LINK_STATE: state_secret or access_secret,
            TokenKind.PASSWORD_RESET: reset_secret,
        }
        self._ttls = {
            TokenKind.ACCESS: access_ttl,
            TokenKind.OAUTH_LINK_STATE: state_ttl,
            TokenKind.PASSWORD_RESET: reset_ttl,
        }
        self._clock = clock or (lambda: datetime.now(UTC))

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "TokenCodec":
        """Build a codec from application settings."""
        return cls(
            access_secret=config.jwt_secret.get_secret_value(),
            reset_secret=config.password_reset_secret.get_secret_value(),
            access_ttl=timedelta(seconds=config.jwt_expiration_seconds),
            state_secret=config.oauth_state_secret.get_secret_value() or None,
        )

    def ttl(self, kind: TokenKind) -> timedelta:
        """Lifetime applied to newly issued tokens of a kind."""
        return self._ttls[kind]

    def _sign(self, kind: TokenKind, claims: dict[str, Any]) -> str:
        now = self._clock()
        payload = {
            **claims,
            "type": kind.value,
            "iat": now,
            "exp": now + self._ttls[kind],
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=_ALGORITHM)

    def issue_access(self, account: User) -> str:
        """Issue an access token for an account.

        The payload carries only id, email and nickname; never the hash.

        Args:
            account: Authenticated account.

        Returns:
            Signed token string.
        """
        return self._sign(
            TokenKind.ACCESS,
            {
                "sub": str(account.id),
                "email": account.email,
                "nickname": account.nickname,
            },
        )

    def issue_oauth_link_state(self, account_id: int, provider: str) -> str:
        """Issue a state token for linking a provider to an account.

        Args:
            account_id: Account the provider will be linked to.
            provider: Provider name; must be in the supported set.

        Returns:
            Signed token string.

        Raises:
            InvalidProviderError: If provider is not supported. Nothing is
                signed in that case.
        """
        parsed = parse_provider(provider)
        return self._sign(
            TokenKind.OAUTH_LINK_STATE,
            {
                "userId": account_id,
                "provider": parsed.value,
                "oauthMethod": _CONNECT,
            },
        )

    def issue_password_reset(self, email: str) -> str:
        """Issue a password-reset token for an email.

        Args:
            email: Account email.

        Returns:
            Signed token string (reset secret).
        """
        return self._sign(TokenKind.PASSWORD_RESET, {"email": email})

    def verify(self, token: str, expected_kind: TokenKind) -> TokenPayload:
        """Verify a token as a given kind and decode its payload.

        Args:
            token: Token string as received.
            expected_kind: Kind the caller requires.

        Returns:
            AccessTokenPayload, OAuthLinkStatePayload or PasswordResetPayload
            matching expected_kind.

        Raises:
            InvalidOrExpiredTokenError: For any failure. The reason is
                deliberately not exposed.
        """
        if not isinstance(token, str) or not token:
            raise InvalidOrExpiredTokenError()
        try:
            claims = jwt.decode(
                token,
                self._secrets[expected_kind],
                algorithms=[_ALGORITHM],
                options={"require": ["exp", "iat", "type"]},
                leeway=0,
            )
            if claims.get("type") != expected_kind.value:
                raise ValueError("type")
            # PyJWT compares exp to the wall clock; re-check against ours
            if claims["exp"] <= self._clock().timestamp():
                raise ValueError("exp")
            return _DECODERS[expected_kind](claims)
        except (jwt.InvalidTokenError, ValueError, KeyError, TypeError) as exc:
            logger.info(
                "Token verification failed",
                extra={"expected_kind": expected_kind.value, "reason": type(exc).__name__},
            )
            raise InvalidOrExpiredTokenError() from None
