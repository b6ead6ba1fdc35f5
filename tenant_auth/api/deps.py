"""Shared dependencies for API endpoints.

Wires the authentication core into FastAPI: one request-scoped account
store per session, and process-wide codec, strategy registry and email
sender. Authenticated endpoints receive an explicit AuthContext.

Bearer extraction order:
1. Authorization: Bearer <token> header
2. ``token`` query parameter (fallback for redirects and link clicks)
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_auth.core.config import settings
from tenant_auth.core.database import get_db
from tenant_auth.core.dispatcher import DynamicAuthDispatcher
from tenant_auth.core.email import EmailSender, ResendEmailSender
from tenant_auth.core.errors import UnauthorizedError
from tenant_auth.core.oauth_registry import StrategyRegistry, build_strategy_registry
from tenant_auth.core.tokens import TokenCodec
from tenant_auth.schemas.auth import AuthContext
from tenant_auth.services.account_store import AccountStore, SqlAccountStore
from tenant_auth.services.auth_service import AuthService

_BEARER_PREFIX = "bearer "


def oauth_callback_url(provider: str) -> str:
    """Callback URL registered with a provider."""
    return f"{settings.backend_url}/api/v1/auth/oauth/{provider}/callback"


@lru_cache
def get_token_codec() -> TokenCodec:
    """Process-wide token codec, built from settings on first use."""
    return TokenCodec.from_settings(settings)


@lru_cache
def get_strategy_registry() -> StrategyRegistry:
    """Process-wide strategy registry, built from settings on first use."""
    return build_strategy_registry(settings)


@lru_cache
def get_email_sender() -> EmailSender:
    return ResendEmailSender(settings)


def get_dispatcher(
    registry: Annotated[StrategyRegistry, Depends(get_strategy_registry)],
) -> DynamicAuthDispatcher:
    return DynamicAuthDispatcher(registry, oauth_callback_url)


def get_account_store(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccountStore:
    """Account store bound to the request's database session."""
    return SqlAccountStore(db)


def get_auth_service(
    store: Annotated[AccountStore, Depends(get_account_store)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    email_sender: Annotated[EmailSender, Depends(get_email_sender)],
) -> AuthService:
    return AuthService(store, codec, email_sender)


def extract_bearer_token(request: Request) -> str | None:
    """Read the bearer token from the header, else the ``token`` query param.

    Args:
        request: HTTP request (injected by FastAPI).

    Returns:
        Token string, or None if neither location carries one.
    """
    header = request.headers.get("authorization", "")
    if header.lower().startswith(_BEARER_PREFIX):
        token = header[len(_BEARER_PREFIX) :].strip()
        if token:
            return token
    return request.query_params.get("token") or None


async def get_current_auth(
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthContext:
    """Authenticate the caller from its bearer token.

    Raises:
        UnauthorizedError: No token supplied (401).
        InvalidOrExpiredTokenError: Token rejected or account gone (401).
    """
    token = extract_bearer_token(request)
    if token is None:
        raise UnauthorizedError()
    return await service.authenticate_access_token(token)


# Type aliases for cleaner endpoint signatures
CurrentAuth = Annotated[AuthContext, Depends(get_current_auth)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
DispatcherDep = Annotated[DynamicAuthDispatcher, Depends(get_dispatcher)]
TokenCodecDep = Annotated[TokenCodec, Depends(get_token_codec)]
