"""OAuth strategies: code-for-identity exchange per provider.

Every provider is consumed through the same OAuthStrategy capability:
build an authorization URL, and exchange an authorization code for an
ExternalIdentity. HttpOAuthStrategy covers providers with a userinfo
endpoint (Google, Discord, Kakao); AppleOAuthStrategy reads the identity
from Apple's signed id_token.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx
import jwt

from tenant_auth.core.errors import OAuthAuthenticationError
from tenant_auth.core.oauth import OAuthProvider, OAuthProviderConfig

logger = logging.getLogger(__name__)

# HTTP client timeout for OAuth token exchange and userinfo
_OAUTH_HTTP_TIMEOUT = 10.0

_APPLE_ISSUER = "https://appleid.apple.com"
_APPLE_JWKS_URL = "https://appleid.apple.com/auth/keys"


@dataclass(frozen=True)
class ExternalIdentity:
    """Identity asserted by a provider after a successful exchange.

    Attributes:
        provider: Provider that asserted the identity.
        provider_id: Provider's unique user identifier.
        email: Email reported by the provider.
        email_verified: Whether the provider vouches for the email.
    """

    provider: OAuthProvider
    provider_id: str
    email: str | None
    email_verified: bool = False


@dataclass(frozen=True)
class AuthenticateOptions:
    """Per-request options handed to a strategy.

    Attributes:
        redirect_uri: Callback URL registered with the provider.
        state: Continuation value threaded through the provider round-trip
            unchanged (possibly an OAuth-link-state token).
    """

    redirect_uri: str
    state: str | None = None


@dataclass(frozen=True)
class OAuthClientCredentials:
    """Client id/secret registered with a provider."""

    client_id: str
    client_secret: str


class OAuthStrategy(ABC):
    """Uniform capability for one identity provider."""

    def __init__(
        self,
        provider: OAuthProvider,
        config: OAuthProviderConfig,
        credentials: OAuthClientCredentials,
    ) -> None:
        self.provider = provider
        self.config = config
        self.credentials = credentials

    @property
    def provider_name(self) -> str:
        """Provider identifier used in paths and stored identities."""
        return self.provider.value

    def authorization_url(self, options: AuthenticateOptions) -> str:
        """Build the provider's authorization URL.

        The state value, when present, is passed through verbatim so the
        provider echoes it back on the callback.
        """
        params: dict[str, str] = {
            "client_id": self.credentials.client_id,
            "redirect_uri": options.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.config.scopes),
        }
        params.update(dict(self.config.extra_authorize_params))
        if options.state:
            params["state"] = options.state
        return f"{self.config.authorization_url}?{urlencode(params)}"

    @abstractmethod
    async def exchange(self, code: str, options: AuthenticateOptions) -> ExternalIdentity:
        """Exchange an authorization code for the caller's identity.

        Raises:
            httpx.HTTPError: On transport or provider HTTP failures.
            OAuthAuthenticationError: If the provider response lacks an identity.
        """
        ...

    async def authenticate(
        self, code: str, options: AuthenticateOptions
    ) -> ExternalIdentity:
        """Activation check: run the handshake and return the identity.

        Args:
            code: Authorization code from the callback.
            options: Redirect URI and continuation state.

        Returns:
            ExternalIdentity asserted by the provider.

        Raises:
            OAuthAuthenticationError: If the handshake fails for any reason.
        """
        try:
            return await self.exchange(code, options)
        except (httpx.HTTPError, ValueError):
            # ValueError: provider answered with a body that is not JSON
            logger.exception(
                "OAuth exchange failed", extra={"provider": self.provider_name}
            )
            raise OAuthAuthenticationError() from None

    async def _request_tokens(self, code: str, redirect_uri: str) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                self.config.token_url,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": redirect_uri,
                    "client_id": self.credentials.client_id,
                    "client_secret": self.credentials.client_secret,
                },
                headers={"Accept": "application/json"},
                timeout=_OAUTH_HTTP_TIMEOUT,
            )
            resp.raise_for_status()
            result: dict[str, Any] = resp.json()
            return result


# ===================================================================
# Userinfo-based providers
# ===================================================================


def _google_identity(info: dict[str, Any]) -> ExternalIdentity:
    return ExternalIdentity(
        provider=OAuthProvider.GOOGLE,
        provider_id=str(info.get("sub", "")),
        email=info.get("email"),
        email_verified=bool(info.get("email_verified", False)),
    )


def _discord_identity(info: dict[str, Any]) -> ExternalIdentity:
    return ExternalIdentity(
        provider=OAuthProvider.DISCORD,
        provider_id=str(info.get("id", "")),
        email=info.get("email"),
        email_verified=bool(info.get("verified", False)),
    )


def _kakao_identity(info: dict[str, Any]) -> ExternalIdentity:
    account = info.get("kakao_account") or {}
    return ExternalIdentity(
        provider=OAuthProvider.KAKAO,
        provider_id=str(info.get("id", "")),
        email=account.get("email"),
        email_verified=bool(
            account.get("is_email_valid") and account.get("is_email_verified")
        ),
    )


USERINFO_MAPPERS: dict[OAuthProvider, Callable[[dict[str, Any]], ExternalIdentity]] = {
    OAuthProvider.GOOGLE: _google_identity,
    OAuthProvider.DISCORD: _discord_identity,
    OAuthProvider.KAKAO: _kakao_identity,
}


class HttpOAuthStrategy(OAuthStrategy):
    """Authorization-code exchange followed by a userinfo request."""

    async def fetch_userinfo(self, access_token: str) -> dict[str, Any]:
        """Fetch user info from the provider.

        Raises:
            httpx.HTTPStatusError: If userinfo request fails.
        """
        if self.config.userinfo_url is None:
            msg = f"{self.provider_name} has no userinfo endpoint"
            raise OAuthAuthenticationError(msg)
        async with httpx.AsyncClient() as client:
            resp = await client.get(
                self.config.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=_OAUTH_HTTP_TIMEOUT,
            )
            resp.raise_for_status()
            result: dict[str, Any] = resp.json()
            return result

    async def exchange(self, code: str, options: AuthenticateOptions) -> ExternalIdentity:
        tokens = await self._request_tokens(code, options.redirect_uri)
        access_token = tokens.get("access_token")
        if not access_token:
            raise OAuthAuthenticationError("OAuth provider did not return access token")

        info = await self.fetch_userinfo(access_token)
        identity = USERINFO_MAPPERS[self.provider](info)
        if not identity.provider_id:
            raise OAuthAuthenticationError(
                "OAuth provider did not return required user info"
            )
        return identity


# ===================================================================
# Apple
# ===================================================================


class AppleOAuthStrategy(OAuthStrategy):
    """Sign in with Apple: identity comes from the verified id_token.

    The configured client secret is the pre-generated ES256 client-secret
    JWT Apple requires.
    """

    def __init__(
        self,
        provider: OAuthProvider,
        config: OAuthProviderConfig,
        credentials: OAuthClientCredentials,
        jwks_client: jwt.PyJWKClient | None = None,
    ) -> None:
        super().__init__(provider, config, credentials)
        self._jwks_client = jwks_client or jwt.PyJWKClient(_APPLE_JWKS_URL)

    async def decode_id_token(self, id_token: str) -> dict[str, Any]:
        """Verify an Apple id_token against Apple's published keys.

        PyJWKClient fetches the key set with blocking I/O, so the lookup
        runs in a worker thread.

        Raises:
            OAuthAuthenticationError: If the token is invalid.
        """
        try:
            signing_key = await asyncio.to_thread(
                self._jwks_client.get_signing_key_from_jwt, id_token
            )
            claims: dict[str, Any] = jwt.decode(
                id_token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.credentials.client_id,
                issuer=_APPLE_ISSUER,
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.PyJWTError:
            logger.warning("Apple id_token verification failed")
            raise OAuthAuthenticationError() from None
        return claims

    async def exchange(self, code: str, options: AuthenticateOptions) -> ExternalIdentity:
        tokens = await self._request_tokens(code, options.redirect_uri)
        id_token = tokens.get("id_token")
        if not id_token:
            raise OAuthAuthenticationError("Apple did not return an id_token")

        claims = await self.decode_id_token(id_token)
        # Apple sends email_verified as either a bool or the string "true"
        verified = claims.get("email_verified") in (True, "true")
        return ExternalIdentity(
            provider=self.provider,
            provider_id=str(claims["sub"]),
            email=claims.get("email"),
            email_verified=verified,
        )
