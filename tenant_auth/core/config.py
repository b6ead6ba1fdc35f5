"""Application configuration loaded from environment variables.

Settings for the database, HTTP surface, token signing, OAuth providers and
email delivery. Uses pydantic-settings for validation and .env file support.
Loaded once at import time and treated as immutable afterwards.
"""

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
_INSECURE_DEFAULT_PASSWORD = "tenant_auth_dev_password"  # nosec B105

# Minimum length for signing secrets in production (256 bits = 32 bytes)
_MIN_SECRET_LENGTH = 32

# Access token lifetime bounds: 15 minutes .. 1 day
_MIN_ACCESS_TTL_SECONDS = 15 * 60
_MAX_ACCESS_TTL_SECONDS = 24 * 60 * 60

# bcrypt accepts 4..31; anything above 15 makes logins unusably slow
_MIN_BCRYPT_ROUNDS = 4
_MAX_BCRYPT_ROUNDS = 15


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "tenant_auth"
    database_user: str = "tenant_auth_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # CORS
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False

    # Token signing
    # Access and OAuth-link-state tokens share jwt_secret unless
    # oauth_state_secret is set. Password-reset tokens always use their own.
    jwt_secret: SecretStr = SecretStr("")
    jwt_expiration_seconds: int = _MAX_ACCESS_TTL_SECONDS
    oauth_state_secret: SecretStr = SecretStr("")
    password_reset_secret: SecretStr = SecretStr("")

    # Password hashing work factor
    bcrypt_rounds: int = 10

    # Frontend URL (OAuth redirects and email links land here)
    frontend_url: str = "http://localhost:3000"

    # Backend URL (OAuth callback URLs are built from this)
    backend_url: str = "http://localhost:8000"

    # OAuth Providers
    google_client_id: str = ""
    google_client_secret: SecretStr = SecretStr("")
    apple_client_id: str = ""
    apple_client_secret: SecretStr = SecretStr("")
    discord_client_id: str = ""
    discord_client_secret: SecretStr = SecretStr("")
    kakao_client_id: str = ""
    kakao_client_secret: SecretStr = SecretStr("")

    # Email
    email_from: str = "noreply@example.com"
    resend_api_key: SecretStr = SecretStr("")

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def is_development(self) -> bool:
        """Whether stack traces and verbose errors may be exposed."""
        return self.environment == "development"

    @model_validator(mode="after")
    def check_security(self) -> "Settings":
        """Validate token and deployment security requirements.

        Checks:
        - Access token lifetime within 15 minutes .. 1 day (all environments)
        - bcrypt work factor within a usable range (all environments)
        - JWT and password-reset secrets set (all environments)
        - Password-reset secret differs from the access secret (all environments)
        - CORS must not use a wildcard origin (all environments)
        - Secrets set and >= 32 chars in production
        - Database password must not be the default in production
        """
        if not (
            _MIN_ACCESS_TTL_SECONDS
            <= self.jwt_expiration_seconds
            <= _MAX_ACCESS_TTL_SECONDS
        ):
            msg = (
                "JWT_EXPIRATION_SECONDS must be between "
                f"{_MIN_ACCESS_TTL_SECONDS} and {_MAX_ACCESS_TTL_SECONDS}. "
                f"Got: {self.jwt_expiration_seconds}"
            )
            raise ValueError(msg)

        if not _MIN_BCRYPT_ROUNDS <= self.bcrypt_rounds <= _MAX_BCRYPT_ROUNDS:
            msg = (
                f"BCRYPT_ROUNDS must be between {_MIN_BCRYPT_ROUNDS} and "
                f"{_MAX_BCRYPT_ROUNDS}. Got: {self.bcrypt_rounds}"
            )
            raise ValueError(msg)

        access_secret = self.jwt_secret.get_secret_value()
        reset_secret = self.password_reset_secret.get_secret_value()
        # Signing secrets are required in every environment
        for name, secret in (
            ("JWT_SECRET", access_secret),
            ("PASSWORD_RESET_SECRET", reset_secret),
        ):
            if not secret:
                msg = (
                    f"{name} must be set. Generate with: "
                    'python -c "import secrets; print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)

        if access_secret == reset_secret:
            msg = (
                "PASSWORD_RESET_SECRET must differ from JWT_SECRET. "
                "A leaked reset secret must not be able to forge session tokens."
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "Credentialed requests are incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            for name, secret in (
                ("JWT_SECRET", access_secret),
                ("PASSWORD_RESET_SECRET", reset_secret),
            ):
                if len(secret) < _MIN_SECRET_LENGTH:
                    msg = (
                        f"{name} must be set to at least {_MIN_SECRET_LENGTH} "
                        'characters in production. Generate with: python -c "import '
                        'secrets; print(secrets.token_hex(32))"'
                    )
                    raise ValueError(msg)

        return self


settings = Settings()
