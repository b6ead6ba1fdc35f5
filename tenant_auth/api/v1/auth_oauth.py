"""OAuth authentication endpoints.

Initiation, callback and link-state issuance for the supported providers
(Google, Apple, Discord, Kakao). Provider selection happens at request
time through the DynamicAuthDispatcher; the ``state`` value is carried
through the provider round-trip untouched.

Apple answers with response_mode=form_post, so its callback arrives as
a POST with form fields rather than query parameters.
"""

import logging
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Form
from fastapi.responses import RedirectResponse
from starlette.responses import Response

from tenant_auth.api.deps import AuthServiceDep, CurrentAuth, DispatcherDep, TokenCodecDep
from tenant_auth.core.config import settings
from tenant_auth.core.dispatcher import DynamicAuthDispatcher
from tenant_auth.core.errors import APIError
from tenant_auth.core.oauth import parse_provider
from tenant_auth.core.responses import DataResponse
from tenant_auth.core.tokens import TokenKind
from tenant_auth.schemas.auth import OAuthOutcome, OAuthStateView
from tenant_auth.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter()


def _frontend_redirect(path: str, params: dict[str, str]) -> RedirectResponse:
    query = urlencode(params, quote_via=quote)
    return RedirectResponse(url=f"{settings.frontend_url}{path}?{query}", status_code=307)


def _outcome_redirect(outcome: OAuthOutcome, provider: str) -> RedirectResponse:
    if outcome.operation == "connect":
        return _frontend_redirect("/mypage", {"connected": provider})
    assert outcome.result is not None
    return _frontend_redirect(
        "/oauth/callback", {"token": outcome.result.access_token}
    )


# ===================================================================
# GET /auth/oauth/{provider}: OAuth Initiation
# ===================================================================


@router.get("/oauth/{provider}")
async def oauth_initiate(
    provider: str,
    dispatcher: DispatcherDep,
    state: str | None = None,
) -> Response:
    """Redirect to the provider's authorization URL.

    A ``state`` query value (an OAuth-link-state token from
    POST /auth/oauth/{provider}/state) turns the round-trip into a
    connect operation for the account that minted it.
    """
    return RedirectResponse(url=dispatcher.begin(provider, state), status_code=307)


# ===================================================================
# GET|POST /auth/oauth/{provider}/callback: OAuth Callback
# ===================================================================


async def _complete(
    provider: str,
    code: str | None,
    state: str | None,
    dispatcher: DynamicAuthDispatcher,
    service: AuthService,
) -> Response:
    try:
        context = await dispatcher.dispatch(provider, code, state)
        outcome = await service.complete_oauth(context)
    except APIError as exc:
        if not state:
            raise
        # Linking starts from the account page; send the failure back there
        logger.warning(
            "OAuth linking failed",
            extra={"provider": provider, "code": exc.code},
        )
        return _frontend_redirect(
            "/mypage", {"errorCode": exc.code, "errorMessage": exc.message}
        )
    return _outcome_redirect(outcome, provider)


@router.get("/oauth/{provider}/callback")
async def oauth_callback(
    provider: str,
    dispatcher: DispatcherDep,
    service: AuthServiceDep,
    code: str | None = None,
    state: str | None = None,
) -> Response:
    """Handle the provider callback after user consent.

    Exchanges the code for an identity, then signs the user in (redirect
    carries the access token) or connects the provider (redirect to the
    account page).
    """
    return await _complete(provider, code, state, dispatcher, service)


@router.post("/oauth/{provider}/callback")
async def oauth_callback_form_post(
    provider: str,
    dispatcher: DispatcherDep,
    service: AuthServiceDep,
    code: str | None = Form(None),
    state: str | None = Form(None),
) -> Response:
    """Form-post variant of the callback (Apple)."""
    return await _complete(provider, code, state, dispatcher, service)


# ===================================================================
# POST /auth/oauth/{provider}/state: Link-state issuance
# ===================================================================


@router.post("/oauth/{provider}/state", status_code=201)
async def issue_link_state(
    provider: str,
    auth: CurrentAuth,
    service: AuthServiceDep,
    codec: TokenCodecDep,
) -> DataResponse[OAuthStateView]:
    """Mint a short-lived state token for connecting a provider.

    The caller passes it to GET /auth/oauth/{provider}?state=... to start
    the linking round-trip.
    """
    parsed = parse_provider(provider)
    state = await service.issue_oauth_link_state(auth.user_id, parsed.value)
    return DataResponse(
        data=OAuthStateView(
            state=state,
            provider=parsed.value,
            expires_in=int(codec.ttl(TokenKind.OAUTH_LINK_STATE).total_seconds()),
        )
    )
