"""API error classes.

Every failure the authentication core can surface to a caller is an
APIError subclass carrying a machine-readable code and an HTTP status.
The exception handlers in main.py map them onto the error envelope.

Unexpected store or network failures are not APIErrors: they propagate
as plain exceptions and become an opaque 500.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400)."""

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no credentials were provided at all.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


# ===================================================================
# Credential errors
# ===================================================================


class UnknownAccountError(APIError):
    """No account exists for the given identifier (404).

    Distinguishable from InvalidCredentialsError on purpose: email existence
    is already disclosed by registration, so login guidance leaks nothing new.
    """

    def __init__(self, message: str = "No account exists for this email") -> None:
        super().__init__(
            code="UNKNOWN_ACCOUNT",
            message=message,
            status_code=404,
        )


class PasswordNotSetError(APIError):
    """Account exists but has no password (403).

    OAuth-only accounts must finish password setup before password login.
    """

    def __init__(self, message: str = "Password has not been set for this account") -> None:
        super().__init__(
            code="PASSWORD_NOT_SET",
            message=message,
            status_code=403,
        )


class InvalidCredentialsError(APIError):
    """Password did not match (401)."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(
            code="INVALID_CREDENTIALS",
            message=message,
            status_code=401,
        )


class InvalidCurrentPasswordError(APIError):
    """Current password confirmation failed (400).

    Raised by credential changes and destructive operations that require
    re-entering the current password.
    """

    def __init__(self, message: str = "Current password is incorrect") -> None:
        super().__init__(
            code="INVALID_CURRENT_PASSWORD",
            message=message,
            status_code=400,
        )


# ===================================================================
# Token errors
# ===================================================================


class InvalidOrExpiredTokenError(APIError):
    """Token verification failed (401).

    Security: one code and one message for every failure reason
    (bad signature, expired, wrong kind, malformed payload). Never
    subclass or parameterize this to expose the reason.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_OR_EXPIRED_TOKEN",
            message="Invalid or expired token",
            status_code=401,
        )


# ===================================================================
# OAuth errors
# ===================================================================


class InvalidProviderError(APIError):
    """Provider is outside the supported set (400).

    Raised before any token is signed.
    """

    def __init__(self, provider: str) -> None:
        super().__init__(
            code="INVALID_PROVIDER",
            message=f"Unsupported OAuth provider: {provider}",
            status_code=400,
        )


class UnknownProviderError(APIError):
    """No strategy registered for the requested provider (404).

    Raised by the strategy registry before any network call.
    """

    def __init__(self, provider: str) -> None:
        super().__init__(
            code="UNKNOWN_PROVIDER",
            message=f"Unknown OAuth provider: {provider}",
            status_code=404,
        )


class OAuthAuthenticationError(APIError):
    """The provider handshake did not produce an identity (401)."""

    def __init__(self, message: str = "OAuth authentication failed") -> None:
        super().__init__(
            code="OAUTH_AUTHENTICATION_FAILED",
            message=message,
            status_code=401,
        )


# ===================================================================
# Account state errors
# ===================================================================


class AccountConflictError(APIError):
    """Account or identity already exists (409).

    Duplicate email on creation, or an external identity that is already
    linked elsewhere.
    """

    def __init__(self, message: str = "An account with this email already exists") -> None:
        super().__init__(
            code="ACCOUNT_CONFLICT",
            message=message,
            status_code=409,
        )


class LastIdentityUnlinkForbiddenError(APIError):
    """Disconnecting would leave the account without any login method (403)."""

    def __init__(self) -> None:
        super().__init__(
            code="LAST_IDENTITY_UNLINK_FORBIDDEN",
            message=(
                "Cannot disconnect the only linked account. "
                "Set a password or connect another provider first."
            ),
            status_code=403,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
