"""OAuth provider set and endpoint configuration.

The supported providers form a closed set. Anything outside it is
rejected by name before a token is signed or a request is made.
"""

from dataclasses import dataclass
from enum import Enum

from tenant_auth.core.errors import InvalidProviderError


class OAuthProvider(str, Enum):
    """Identity providers an account can sign in with or link."""

    GOOGLE = "google"
    APPLE = "apple"
    DISCORD = "discord"
    KAKAO = "kakao"


SUPPORTED_PROVIDERS: tuple[str, ...] = tuple(p.value for p in OAuthProvider)


def parse_provider(provider: str) -> OAuthProvider:
    """Convert a provider name into the closed OAuthProvider set.

    Args:
        provider: Provider name as received (path segment, body field).

    Returns:
        The matching OAuthProvider.

    Raises:
        InvalidProviderError: If the name is not a supported provider.
    """
    try:
        return OAuthProvider(provider)
    except ValueError:
        raise InvalidProviderError(provider) from None


# ===================================================================
# OAuth Provider Configuration
# ===================================================================


@dataclass(frozen=True)
class OAuthProviderConfig:
    """Endpoint configuration for an OAuth provider.

    Attributes:
        authorization_url: Provider's authorization endpoint.
        token_url: Provider's token exchange endpoint.
        userinfo_url: Provider's userinfo endpoint. None when the identity
            comes from the id_token instead (Apple).
        scopes: OAuth scopes to request.
        extra_authorize_params: Provider-specific authorization parameters.
    """

    authorization_url: str
    token_url: str
    userinfo_url: str | None
    scopes: tuple[str, ...]
    extra_authorize_params: tuple[tuple[str, str], ...] = ()


_PROVIDERS: dict[OAuthProvider, OAuthProviderConfig] = {
    OAuthProvider.GOOGLE: OAuthProviderConfig(  # nosec B106 - token_url is an endpoint
        authorization_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        userinfo_url="https://openidconnect.googleapis.com/v1/userinfo",
        scopes=("openid", "email", "profile"),
    ),
    OAuthProvider.APPLE: OAuthProviderConfig(  # nosec B106
        authorization_url="https://appleid.apple.com/auth/authorize",
        token_url="https://appleid.apple.com/auth/token",
        userinfo_url=None,
        scopes=("name", "email"),
        extra_authorize_params=(("response_mode", "form_post"),),
    ),
    OAuthProvider.DISCORD: OAuthProviderConfig(  # nosec B106
        authorization_url="https://discord.com/oauth2/authorize",
        token_url="https://discord.com/api/oauth2/token",
        userinfo_url="https://discord.com/api/users/@me",
        scopes=("identify", "email"),
    ),
    OAuthProvider.KAKAO: OAuthProviderConfig(  # nosec B106
        authorization_url="https://kauth.kakao.com/oauth/authorize",
        token_url="https://kauth.kakao.com/oauth/token",
        userinfo_url="https://kapi.kakao.com/v2/user/me",
        scopes=("account_email",),
    ),
}


def get_provider_config(provider: OAuthProvider) -> OAuthProviderConfig:
    """Get endpoint configuration for a provider.

    Args:
        provider: Supported provider.

    Returns:
        OAuthProviderConfig for the provider.
    """
    return _PROVIDERS[provider]
