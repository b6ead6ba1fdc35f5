"""Tests for application configuration.

Defaults, token lifetime and work-factor bounds, and production security
validation.
"""

import pytest
from pydantic import SecretStr, ValidationError

from tenant_auth.core.config import _INSECURE_DEFAULT_PASSWORD, Settings

# Reusable test constants
_SECURE_DB_PASSWORD = "my-secure-production-password-123!"
_ACCESS_SECRET = SecretStr("a" * 64)
_RESET_SECRET = SecretStr("b" * 64)
_PRODUCTION = "production"


def _settings(**overrides) -> Settings:
    values = {
        "jwt_secret": _ACCESS_SECRET,
        "password_reset_secret": _RESET_SECRET,
    }
    values.update(overrides)
    return Settings(**values)


class TestDefaults:
    def test_access_token_lifetime_defaults_to_one_day(self):
        assert _settings().jwt_expiration_seconds == 86400

    def test_database_url(self):
        s = _settings(
            database_user="u",
            database_password="p",
            database_host="db",
            database_port=5433,
            database_name="auth",
        )
        assert s.database_url == "postgresql+asyncpg://u:p@db:5433/auth"

    def test_is_development(self):
        assert _settings(environment="development").is_development is True
        assert _settings(environment="staging").is_development is False


class TestTokenValidation:
    def test_rejects_identical_access_and_reset_secrets(self):
        with pytest.raises(ValidationError) as exc_info:
            _settings(password_reset_secret=_ACCESS_SECRET)
        assert "PASSWORD_RESET_SECRET must differ" in str(exc_info.value)

    @pytest.mark.parametrize(
        ("field", "env_name"),
        [("jwt_secret", "JWT_SECRET"), ("password_reset_secret", "PASSWORD_RESET_SECRET")],
    )
    def test_rejects_empty_secret_in_development(self, field, env_name):
        with pytest.raises(ValidationError) as exc_info:
            _settings(environment="development", **{field: SecretStr("")})
        assert f"{env_name} must be set" in str(exc_info.value)

    @pytest.mark.parametrize("seconds", [60, 899, 86401])
    def test_rejects_lifetime_out_of_range(self, seconds):
        with pytest.raises(ValidationError):
            _settings(jwt_expiration_seconds=seconds)

    @pytest.mark.parametrize("seconds", [900, 3600, 86400])
    def test_accepts_lifetime_in_range(self, seconds):
        assert _settings(jwt_expiration_seconds=seconds).jwt_expiration_seconds == seconds

    @pytest.mark.parametrize("rounds", [3, 16])
    def test_rejects_bcrypt_rounds_out_of_range(self, rounds):
        with pytest.raises(ValidationError):
            _settings(bcrypt_rounds=rounds)

    def test_rejects_wildcard_cors(self):
        with pytest.raises(ValidationError):
            _settings(allowed_origins=["*"])


class TestProductionSecurityValidation:
    """Tests for production security requirements."""

    def test_allows_default_password_in_development(self):
        s = _settings(
            environment="development",
            database_password=_INSECURE_DEFAULT_PASSWORD,
        )
        assert s.database_password == _INSECURE_DEFAULT_PASSWORD

    def test_rejects_default_password_in_production(self):
        with pytest.raises(ValidationError) as exc_info:
            _settings(
                environment=_PRODUCTION,
                database_password=_INSECURE_DEFAULT_PASSWORD,
            )
        assert "Cannot use default database password in production" in str(
            exc_info.value
        )

    def test_rejects_short_secret_in_production(self):
        with pytest.raises(ValidationError) as exc_info:
            _settings(
                environment=_PRODUCTION,
                database_password=_SECURE_DB_PASSWORD,
                jwt_secret=SecretStr("too-short"),
            )
        assert "JWT_SECRET must be set" in str(exc_info.value)

    def test_rejects_missing_reset_secret_in_production(self):
        with pytest.raises(ValidationError) as exc_info:
            _settings(
                environment=_PRODUCTION,
                database_password=_SECURE_DB_PASSWORD,
                password_reset_secret=SecretStr(""),
            )
        assert "PASSWORD_RESET_SECRET must be set" in str(exc_info.value)

    def test_allows_secure_production_config(self):
        s = _settings(environment=_PRODUCTION, database_password=_SECURE_DB_PASSWORD)
        assert s.environment == _PRODUCTION

    def test_short_secret_allowed_outside_production(self):
        s = _settings(environment="development", jwt_secret=SecretStr("dev"))
        assert s.jwt_secret.get_secret_value() == "dev"
