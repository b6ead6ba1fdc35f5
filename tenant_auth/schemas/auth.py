"""Authentication request/response schemas.

Account views are built from ORM rows with from_attributes and never
declare a password field, so a hash cannot leak through serialization.
Request schemas use ConfigDict(extra="forbid") to reject unexpected fields.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from tenant_auth.core.credentials import MAX_PASSWORD_BYTES, password_too_long

_MAX_PASSWORD_LEN = 128


def _check_password_bytes(value: str | None) -> str | None:
    if value is not None and password_too_long(value):
        msg = f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
        raise ValueError(msg)
    return value


# ===================================================================
# Views
# ===================================================================


class AccountView(BaseModel):
    """Account data safe to return to a caller."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    nickname: str
    verified: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoginResult(BaseModel):
    """Issued access token plus the sanitized account."""

    access_token: str
    user: AccountView


class OAuthConnection(BaseModel):
    """Link status for one supported provider."""

    provider: str
    connected: bool
    oauth_email: str | None = None


class ProfileView(AccountView):
    """Account view with login-method details."""

    has_password: bool
    oauth_connections: list[OAuthConnection]


class OAuthOutcome(BaseModel):
    """Result of completing an OAuth callback.

    operation is "login" when the callback signed the user in and
    "connect" when it linked a provider to an existing session's account.
    """

    operation: Literal["login", "connect"]
    account: AccountView
    result: LoginResult | None = None


class AuthContext(BaseModel):
    """Authenticated caller, threaded explicitly to endpoints."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    nickname: str


class OAuthStateView(BaseModel):
    """Issued OAuth-link-state token."""

    state: str
    provider: str
    expires_in: int


# ===================================================================
# Requests
# ===================================================================


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LEN)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str | None = Field(None, min_length=8, max_length=_MAX_PASSWORD_LEN)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str | None) -> str | None:
        """Reject passwords bcrypt cannot hash."""
        return _check_password_bytes(v)


class PasswordResetRequest(BaseModel):
    """Request body for POST /auth/password-reset."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class PasswordResetConfirmRequest(BaseModel):
    """Request body for POST /auth/password-reset/confirm."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=_MAX_PASSWORD_LEN)

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /users/me/password."""

    model_config = ConfigDict(extra="forbid")

    current_password: str | None = Field(None, max_length=_MAX_PASSWORD_LEN)
    new_password: str = Field(min_length=8, max_length=_MAX_PASSWORD_LEN)

    @field_validator("current_password", "new_password")
    @classmethod
    def passwords_fit_bcrypt(cls, v: str | None) -> str | None:
        return _check_password_bytes(v)


class DeleteAccountRequest(BaseModel):
    """Request body for DELETE /users/me."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LEN)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class UpdateProfileRequest(BaseModel):
    """Request body for PATCH /users/me."""

    model_config = ConfigDict(extra="forbid")

    nickname: str = Field(min_length=1, max_length=100)
