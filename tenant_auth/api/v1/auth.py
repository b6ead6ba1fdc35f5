"""Authentication endpoints for password-based auth.

Register, login, email verification and password reset.

Security considerations:
- login: missing accounts still pay a bcrypt comparison cost
- password-reset: always answers success, whether or not the email exists
- verify-email: tokens are opaque, hashed at rest and single use
"""

from fastapi import APIRouter

from tenant_auth.api.deps import AuthServiceDep
from tenant_auth.core.responses import DataResponse, MessageData
from tenant_auth.schemas.auth import (
    AccountView,
    LoginRequest,
    LoginResult,
    PasswordResetConfirmRequest,
    PasswordResetRequest,
    RegisterRequest,
)

router = APIRouter()

_RESET_REQUESTED_MSG = (
    "If an account exists for that email, a password reset link has been sent."
)


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    service: AuthServiceDep,
) -> DataResponse[AccountView]:
    """Create an account and send a verification email.

    The password is optional: accounts may be set up password-less and
    sign in through OAuth or set a password later.
    """
    account = await service.register(body.email, body.password)
    return DataResponse(data=account)


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
async def login(
    body: LoginRequest,
    service: AuthServiceDep,
) -> DataResponse[LoginResult]:
    """Sign in with email + password and return an access token."""
    result = await service.login_with_password(body.email, body.password)
    return DataResponse(data=result)


# ===================================================================
# GET /auth/verify-email
# ===================================================================


@router.get("/verify-email")
async def verify_email(
    token: str,
    service: AuthServiceDep,
) -> DataResponse[AccountView]:
    """Consume an email-verification token and mark the account verified."""
    account = await service.confirm_email(token)
    return DataResponse(data=account)


# ===================================================================
# POST /auth/password-reset
# ===================================================================


@router.post("/password-reset")
async def request_password_reset(
    body: PasswordResetRequest,
    service: AuthServiceDep,
) -> DataResponse[MessageData]:
    """Email a reset link. Same answer for known and unknown emails."""
    await service.initiate_password_reset(body.email)
    return DataResponse(data=MessageData(message=_RESET_REQUESTED_MSG))


@router.post("/password-reset/confirm")
async def confirm_password_reset(
    body: PasswordResetConfirmRequest,
    service: AuthServiceDep,
) -> DataResponse[MessageData]:
    """Set a new password using the emailed reset token."""
    await service.complete_password_reset(body.token, body.new_password)
    return DataResponse(data=MessageData(message="Password has been reset"))
