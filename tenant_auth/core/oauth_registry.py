"""OAuth strategy registry.

Maps a provider name to its strategy. Populated once at process start
from settings; lookups are plain dict reads with no I/O.
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType

from tenant_auth.core.config import Settings
from tenant_auth.core.errors import UnknownProviderError
from tenant_auth.core.oauth import OAuthProvider, get_provider_config
from tenant_auth.core.oauth_client import (
    AppleOAuthStrategy,
    HttpOAuthStrategy,
    OAuthClientCredentials,
    OAuthStrategy,
)

logger = logging.getLogger(__name__)


class StrategyRegistry:
    """Read-only lookup table from provider name to strategy.

    Args:
        strategies: Strategies keyed by provider name.
    """

    def __init__(self, strategies: Mapping[str, OAuthStrategy]) -> None:
        self._strategies = MappingProxyType(dict(strategies))

    def resolve(self, provider: str) -> OAuthStrategy:
        """Look up the strategy for a provider.

        Args:
            provider: Provider name, typically a path segment.

        Returns:
            The registered strategy.

        Raises:
            UnknownProviderError: If no strategy is registered under the name.
        """
        strategy = self._strategies.get(provider)
        if strategy is None:
            raise UnknownProviderError(provider)
        return strategy

    def providers(self) -> list[str]:
        """Names of all registered providers, sorted."""
        return sorted(self._strategies)

    def __contains__(self, provider: object) -> bool:
        return provider in self._strategies


def build_strategy_registry(config: Settings) -> StrategyRegistry:
    """Create strategies for every provider with a configured client id.

    Providers without credentials are left out, so requests naming them
    fail with UnknownProviderError like any other unknown name.

    Args:
        config: Application settings.

    Returns:
        Populated StrategyRegistry.
    """
    strategies: dict[str, OAuthStrategy] = {}
    for provider in OAuthProvider:
        client_id: str = getattr(config, f"{provider.value}_client_id")
        if not client_id:
            continue
        credentials = OAuthClientCredentials(
            client_id=client_id,
            client_secret=getattr(
                config, f"{provider.value}_client_secret"
            ).get_secret_value(),
        )
        strategy_cls = (
            AppleOAuthStrategy if provider is OAuthProvider.APPLE else HttpOAuthStrategy
        )
        strategies[provider.value] = strategy_cls(
            provider, get_provider_config(provider), credentials
        )

    logger.info(
        "OAuth strategies registered", extra={"providers": sorted(strategies)}
    )
    return StrategyRegistry(strategies)
