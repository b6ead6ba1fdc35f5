"""Authentication orchestration.

Ties the credential validator, token codec and account store together:
password login, OAuth login and linking, password reset, registration
with email verification, and account maintenance.

Account linking rules for an OAuth callback:
1. state present → verify it as an OAuth-link-state token and connect the
   identity to the account it names (provider must match the path)
2. provider identity already linked → returning user
3. email matches an account AND both sides verified → link, then login
4. email matches but either side unverified → reject (pre-hijack defense)
5. no matching email → create a verified, password-less account
"""

import hashlib
import logging
import secrets
import time
from datetime import UTC, datetime, timedelta

from tenant_auth.core.credentials import (
    change_secret,
    hash_password,
    verify_current_secret,
    verify_password,
)
from tenant_auth.core.dispatcher import OAuthContext
from tenant_auth.core.email import EmailSender
from tenant_auth.core.errors import (
    AccountConflictError,
    InvalidCredentialsError,
    InvalidCurrentPasswordError,
    InvalidOrExpiredTokenError,
    LastIdentityUnlinkForbiddenError,
    NotFoundError,
    OAuthAuthenticationError,
    PasswordNotSetError,
    UnknownAccountError,
)
from tenant_auth.core.oauth import SUPPORTED_PROVIDERS, parse_provider
from tenant_auth.core.tokens import (
    AccessTokenPayload,
    OAuthLinkStatePayload,
    PasswordResetPayload,
    TokenCodec,
    TokenKind,
)
from tenant_auth.models.user import User
from tenant_auth.schemas.auth import (
    AccountView,
    AuthContext,
    LoginResult,
    OAuthConnection,
    OAuthOutcome,
    ProfileView,
)
from tenant_auth.services.account_store import AccountStore

logger = logging.getLogger(__name__)

# Email verification token TTL
_VERIFICATION_TOKEN_TTL = timedelta(hours=24)

_NICKNAME_WORDS = (
    "Brave",
    "Calm",
    "Clever",
    "Eager",
    "Gentle",
    "Happy",
    "Lucky",
    "Quiet",
    "Swift",
    "Witty",
)


def generate_nickname() -> str:
    """Random display name: a word followed by the epoch in milliseconds."""
    return f"{secrets.choice(_NICKNAME_WORDS)}{int(time.time() * 1000)}"


def _hash_token(plain: str) -> str:
    return hashlib.sha256(plain.encode()).hexdigest()


class AuthService:
    """Authentication use cases for one request.

    Args:
        store: Account store (request-scoped).
        codec: Token codec (process-wide, immutable).
        email_sender: Outbound email collaborator.
    """

    def __init__(
        self,
        store: AccountStore,
        codec: TokenCodec,
        email_sender: EmailSender,
    ) -> None:
        self.store = store
        self.codec = codec
        self.email_sender = email_sender

    # ---------------------------------------------------------------
    # Login
    # ---------------------------------------------------------------

    def _login_result(self, user: User) -> LoginResult:
        return LoginResult(
            access_token=self.codec.issue_access(user),
            user=AccountView.model_validate(user),
        )

    async def login_with_password(self, email: str, secret: str) -> LoginResult:
        """Sign in with email + password.

        The three failure kinds stay distinguishable: email existence is
        already disclosed by registration, so this is UX guidance rather
        than an oracle.

        Raises:
            UnknownAccountError: No account for the email.
            PasswordNotSetError: Account has no password (OAuth-only).
            InvalidCredentialsError: Password mismatch.
        """
        user = await self.store.find_by_email(email)
        if user is None:
            raise UnknownAccountError()
        if not user.password_hash:
            raise PasswordNotSetError()
        if not verify_password(secret, user.password_hash):
            raise InvalidCredentialsError()

        logger.info("Password login succeeded", extra={"user_id": user.id})
        return self._login_result(user)

    async def login_with_oauth(self, account: User) -> LoginResult:
        """Issue an access token for an externally verified account.

        Same token as the password path; there is no separate trust tier.
        """
        return self._login_result(account)

    # ---------------------------------------------------------------
    # OAuth
    # ---------------------------------------------------------------

    async def issue_oauth_link_state(self, account_id: int, provider: str) -> str:
        """Issue a state token for linking a provider to an account.

        The provider is checked here and again by the codec.

        Raises:
            InvalidProviderError: Provider outside the supported set.
            UnknownAccountError: Account does not exist.
        """
        parse_provider(provider)
        if await self.store.find_by_id(account_id) is None:
            raise UnknownAccountError()
        return self.codec.issue_oauth_link_state(account_id, provider)

    async def complete_oauth(self, context: OAuthContext) -> OAuthOutcome:
        """Finish an OAuth callback: connect to an account or sign in.

        Args:
            context: Authenticated dispatch result.

        Returns:
            OAuthOutcome describing what happened.

        Raises:
            InvalidOrExpiredTokenError: State present but invalid, expired,
                or minted for a different provider.
            AccountConflictError: Identity or email already owned elsewhere.
            OAuthAuthenticationError: Provider gave no usable email for a
                new account.
        """
        if context.state:
            return await self._connect(context)

        identity = context.identity
        user = await self.store.find_by_external_identity(
            identity.provider.value, identity.provider_id
        )
        if user is not None:
            logger.info(
                "Returning OAuth user",
                extra={"user_id": user.id, "provider": context.provider},
            )
            return OAuthOutcome(
                operation="login",
                account=AccountView.model_validate(user),
                result=await self.login_with_oauth(user),
            )

        if not identity.email:
            raise OAuthAuthenticationError("OAuth provider did not return an email")

        user = await self.store.find_by_email(identity.email)
        if user is not None:
            # Security: link only if BOTH the provider AND the account verify
            # the email, so a pre-registered account cannot capture an OAuth login
            if not (identity.email_verified and user.verified):
                logger.warning(
                    "OAuth account linking blocked by email verification",
                    extra={
                        "provider": context.provider,
                        "provider_verified": identity.email_verified,
                        "existing_verified": user.verified,
                    },
                )
                raise AccountConflictError(
                    "An account with this email already exists. "
                    "Please sign in with your original method first."
                )
            logger.info(
                "Linked OAuth account to existing user",
                extra={"user_id": user.id, "provider": context.provider},
            )
        else:
            user = await self.store.create(
                email=identity.email,
                nickname=generate_nickname(),
                verified=identity.email_verified,
            )
            logger.info(
                "Created new OAuth user",
                extra={"user_id": user.id, "provider": context.provider},
            )

        await self.store.link_identity(
            user.id,
            provider=identity.provider.value,
            provider_id=identity.provider_id,
            oauth_email=identity.email,
        )
        return OAuthOutcome(
            operation="login",
            account=AccountView.model_validate(user),
            result=await self.login_with_oauth(user),
        )

    async def _connect(self, context: OAuthContext) -> OAuthOutcome:
        payload = self.codec.verify(context.state or "", TokenKind.OAUTH_LINK_STATE)
        assert isinstance(payload, OAuthLinkStatePayload)
        if payload.provider.value != context.provider:
            logger.warning(
                "OAuth state provider mismatch",
                extra={"provider": context.provider},
            )
            raise InvalidOrExpiredTokenError()

        user = await self.store.find_by_id(payload.user_id)
        if user is None:
            raise InvalidOrExpiredTokenError()

        identity = context.identity
        owner = await self.store.find_by_external_identity(
            identity.provider.value, identity.provider_id
        )
        if owner is not None and owner.id != user.id:
            raise AccountConflictError(
                f"This {context.provider} account is linked to another user"
            )

        if owner is None:
            linked = await self.store.list_identities(user.id)
            if any(acc.provider == context.provider for acc in linked):
                raise AccountConflictError(
                    f"A different {context.provider} account is already connected"
                )
            await self.store.link_identity(
                user.id,
                provider=identity.provider.value,
                provider_id=identity.provider_id,
                oauth_email=identity.email,
            )
            logger.info(
                "Connected OAuth account",
                extra={"user_id": user.id, "provider": context.provider},
            )

        return OAuthOutcome(operation="connect", account=AccountView.model_validate(user))

    async def disconnect_oauth_account(self, user_id: int, provider: str) -> None:
        """Unlink a provider from an account.

        Raises:
            InvalidProviderError: Provider outside the supported set.
            NotFoundError: The provider is not linked to the account.
            LastIdentityUnlinkForbiddenError: It is the only login method.
        """
        parse_provider(provider)
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise UnknownAccountError()

        linked = await self.store.list_identities(user_id)
        if not any(acc.provider == provider for acc in linked):
            raise NotFoundError("OAuth connection", provider)
        if not user.password_hash and len(linked) <= 1:
            raise LastIdentityUnlinkForbiddenError()

        await self.store.unlink_identity(user_id, provider)
        logger.info(
            "Disconnected OAuth account",
            extra={"user_id": user_id, "provider": provider},
        )

    # ---------------------------------------------------------------
    # Password reset
    # ---------------------------------------------------------------

    async def initiate_password_reset(self, email: str) -> None:
        """Email a password-reset link if the account exists.

        Always returns normally so callers cannot enumerate accounts.
        The token is signed in every path to keep timing uniform.
        """
        token = self.codec.issue_password_reset(email.strip().lower())
        user = await self.store.find_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return
        await self.email_sender.send_password_reset_email(user.email, token)

    async def complete_password_reset(self, token: str, new_secret: str) -> None:
        """Set a new password using a password-reset token.

        Raises:
            InvalidOrExpiredTokenError: Token invalid, expired, or names an
                account that no longer exists.
        """
        payload = self.codec.verify(token, TokenKind.PASSWORD_RESET)
        assert isinstance(payload, PasswordResetPayload)
        user = await self.store.find_by_email(payload.email)
        if user is None:
            raise InvalidOrExpiredTokenError()
        await change_secret(self.store, user.id, new_secret)

    # ---------------------------------------------------------------
    # Registration & email verification
    # ---------------------------------------------------------------

    async def register(self, email: str, secret: str | None = None) -> AccountView:
        """Create an account and send an email-verification link.

        Raises:
            AccountConflictError: Email already registered.
        """
        if await self.store.find_by_email(email) is not None:
            raise AccountConflictError()

        user = await self.store.create(
            email=email,
            nickname=generate_nickname(),
            password_hash=hash_password(secret) if secret else None,
            verified=False,
        )
        token = await self.issue_email_verification(user.email)
        await self.email_sender.send_verification_email(user.email, token)
        logger.info("Registered new user", extra={"user_id": user.id})
        return AccountView.model_validate(user)

    async def issue_email_verification(self, email: str) -> str:
        """Create an opaque single-use verification token.

        Only the SHA-256 hash is stored.

        Returns:
            Plain token for the email link.
        """
        plain = secrets.token_urlsafe(32)
        await self.store.save_verification_token(
            email=email.strip().lower(),
            token_hash=_hash_token(plain),
            expires=datetime.now(UTC) + _VERIFICATION_TOKEN_TTL,
        )
        return plain

    async def confirm_email(self, token: str) -> AccountView:
        """Mark an account verified by consuming its verification token.

        Raises:
            InvalidOrExpiredTokenError: Unknown, used, or expired token.
        """
        email = await self.store.consume_verification_token(_hash_token(token))
        if email is None:
            raise InvalidOrExpiredTokenError()
        user = await self.store.find_by_email(email)
        if user is None:
            raise InvalidOrExpiredTokenError()
        updated = await self.store.update(user.id, verified=True)
        return AccountView.model_validate(updated or user)

    # ---------------------------------------------------------------
    # Account maintenance
    # ---------------------------------------------------------------

    async def authenticate_access_token(self, token: str) -> AuthContext:
        """Resolve a bearer token into the calling account.

        Raises:
            InvalidOrExpiredTokenError: Token invalid or account gone.
        """
        payload = self.codec.verify(token, TokenKind.ACCESS)
        assert isinstance(payload, AccessTokenPayload)
        user = await self.store.find_by_id(payload.user_id)
        if user is None:
            raise InvalidOrExpiredTokenError()
        return AuthContext(user_id=user.id, email=user.email, nickname=user.nickname)

    async def get_profile(self, user_id: int) -> ProfileView:
        """Account view with password and provider connection status."""
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise UnknownAccountError()
        linked = {acc.provider: acc for acc in await self.store.list_identities(user_id)}
        return ProfileView(
            **AccountView.model_validate(user).model_dump(),
            has_password=user.password_hash is not None,
            oauth_connections=[
                OAuthConnection(
                    provider=name,
                    connected=name in linked,
                    oauth_email=linked[name].oauth_email if name in linked else None,
                )
                for name in SUPPORTED_PROVIDERS
            ],
        )

    async def update_profile(self, user_id: int, nickname: str) -> AccountView:
        updated = await self.store.update(user_id, nickname=nickname)
        if updated is None:
            raise UnknownAccountError()
        return AccountView.model_validate(updated)

    async def change_password(
        self, user_id: int, new_secret: str, current_secret: str | None = None
    ) -> None:
        """Change password; confirms current_secret when supplied.

        Accounts that already have a password must supply it.

        Raises:
            InvalidCurrentPasswordError: Missing or wrong current password.
        """
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise UnknownAccountError()
        if user.password_hash and current_secret is None:
            raise InvalidCurrentPasswordError("Current password required")
        await change_secret(self.store, user_id, new_secret, current_secret)

    async def delete_account(self, user_id: int, email: str, secret: str) -> None:
        """Delete an account after re-confirming email and password.

        Raises:
            InvalidCurrentPasswordError: Email or password mismatch.
            PasswordNotSetError: Account has no password to confirm with.
        """
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise UnknownAccountError()
        if user.email != email.strip().lower():
            raise InvalidCurrentPasswordError("Email does not match this account")
        await verify_current_secret(self.store, user_id, secret)
        await self.store.delete(user_id)
        logger.info("Deleted account", extra={"user_id": user_id})
