"""Dynamic OAuth dispatch.

Selects the strategy for an OAuth request at request time from the
provider path segment, threads the optional ``state`` continuation into
the strategy's options unchanged, and hands control to the strategy.

Per-request flow:
1. Entry: provider name taken from the path
2. Resolve: registry lookup; unknown provider fails before any network call
3. Carry-through: state copied verbatim into AuthenticateOptions
4. Delegate: the strategy's activation check runs the handshake

Outcome is either an OAuthContext (authenticated) or a raised APIError
(rejected). Nothing is written on rejection.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from tenant_auth.core.errors import OAuthAuthenticationError
from tenant_auth.core.oauth_client import AuthenticateOptions, ExternalIdentity
from tenant_auth.core.oauth_registry import StrategyRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthContext:
    """Result of a successful dispatch, passed on to AuthService.

    Attributes:
        provider: Provider name from the path.
        identity: Identity asserted by the provider.
        state: Continuation value returned by the provider, unchanged.
    """

    provider: str
    identity: ExternalIdentity
    state: str | None = None


class DynamicAuthDispatcher:
    """Request-time gate in front of the OAuth strategies.

    Args:
        registry: Strategy lookup table.
        callback_url_for: Builds the callback URL for a provider name.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        callback_url_for: Callable[[str], str],
    ) -> None:
        self.registry = registry
        self.callback_url_for = callback_url_for

    def _options(self, provider: str, state: str | None) -> AuthenticateOptions:
        return AuthenticateOptions(
            redirect_uri=self.callback_url_for(provider),
            state=state,
        )

    def begin(self, provider: str, state: str | None = None) -> str:
        """Return the provider authorization URL for a new round-trip.

        Args:
            provider: Provider name from the path.
            state: Optional continuation to carry through the provider.

        Returns:
            Authorization URL to redirect the browser to.

        Raises:
            UnknownProviderError: If the provider is not registered.
        """
        strategy = self.registry.resolve(provider)
        return strategy.authorization_url(self._options(provider, state))

    async def dispatch(
        self,
        provider: str,
        code: str | None,
        state: str | None = None,
    ) -> OAuthContext:
        """Authenticate a provider callback.

        Args:
            provider: Provider name from the path.
            code: Authorization code returned by the provider.
            state: Continuation value returned by the provider.

        Returns:
            OAuthContext for the authenticated identity.

        Raises:
            UnknownProviderError: If the provider is not registered.
            OAuthAuthenticationError: If the code is missing or the
                strategy rejects the handshake.
        """
        strategy = self.registry.resolve(provider)
        if not code:
            raise OAuthAuthenticationError("Missing authorization code")

        identity = await strategy.authenticate(code, self._options(provider, state))
        logger.info(
            "OAuth identity authenticated",
            extra={"provider": provider, "linking": state is not None},
        )
        return OAuthContext(provider=provider, identity=identity, state=state)
