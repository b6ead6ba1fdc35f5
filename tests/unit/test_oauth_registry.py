"""Tests for the provider set and the strategy registry."""

import pytest
from pydantic import SecretStr

from tenant_auth.core.config import Settings
from tenant_auth.core.errors import InvalidProviderError, UnknownProviderError
from tenant_auth.core.oauth import (
    SUPPORTED_PROVIDERS,
    OAuthProvider,
    get_provider_config,
    parse_provider,
)
from tenant_auth.core.oauth_client import AppleOAuthStrategy, HttpOAuthStrategy
from tenant_auth.core.oauth_registry import StrategyRegistry, build_strategy_registry
from tests.conftest import FakeOAuthStrategy


class TestProviderSet:
    def test_closed_set(self):
        assert set(SUPPORTED_PROVIDERS) == {"google", "apple", "discord", "kakao"}

    def test_parse_known_provider(self):
        assert parse_provider("discord") is OAuthProvider.DISCORD

    @pytest.mark.parametrize("name", ["github", "GOOGLE", "", "linkedin"])
    def test_parse_unknown_provider(self, name):
        with pytest.raises(InvalidProviderError) as exc_info:
            parse_provider(name)
        assert exc_info.value.status_code == 400

    def test_apple_uses_form_post_and_id_token(self):
        config = get_provider_config(OAuthProvider.APPLE)
        assert config.userinfo_url is None
        assert ("response_mode", "form_post") in config.extra_authorize_params


class TestStrategyRegistry:
    def test_resolve_registered(self):
        strategy = FakeOAuthStrategy(OAuthProvider.GOOGLE)
        registry = StrategyRegistry({"google": strategy})
        assert registry.resolve("google") is strategy
        assert "google" in registry

    def test_resolve_unknown(self):
        registry = StrategyRegistry({"google": FakeOAuthStrategy(OAuthProvider.GOOGLE)})
        with pytest.raises(UnknownProviderError) as exc_info:
            registry.resolve("github")
        assert exc_info.value.code == "UNKNOWN_PROVIDER"
        assert "github" not in registry

    def test_registry_is_read_only(self):
        source = {"google": FakeOAuthStrategy(OAuthProvider.GOOGLE)}
        registry = StrategyRegistry(source)
        source["kakao"] = FakeOAuthStrategy(OAuthProvider.KAKAO)
        assert registry.providers() == ["google"]


class TestBuildStrategyRegistry:
    def _settings(self, **overrides) -> Settings:
        return Settings(
            jwt_secret=SecretStr("a" * 32),
            password_reset_secret=SecretStr("b" * 32),
            **overrides,
        )

    def test_only_configured_providers_registered(self):
        config = self._settings(
            google_client_id="gid",
            google_client_secret=SecretStr("gsecret"),
            kakao_client_id="kid",
            apple_client_id="",
            discord_client_id="",
        )
        registry = build_strategy_registry(config)
        assert registry.providers() == ["google", "kakao"]
        assert isinstance(registry.resolve("google"), HttpOAuthStrategy)
        assert registry.resolve("google").credentials.client_secret == "gsecret"
        with pytest.raises(UnknownProviderError):
            registry.resolve("discord")

    def test_apple_gets_id_token_strategy(self):
        config = self._settings(
            apple_client_id="com.example.app",
            google_client_id="",
            discord_client_id="",
            kakao_client_id="",
        )
        registry = build_strategy_registry(config)
        assert isinstance(registry.resolve("apple"), AppleOAuthStrategy)
