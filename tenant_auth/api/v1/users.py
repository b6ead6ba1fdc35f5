"""Account endpoints for the authenticated caller.

Profile read/update, password change, account deletion and OAuth
provider disconnection. All routes require a bearer token.
"""

from fastapi import APIRouter

from tenant_auth.api.deps import AuthServiceDep, CurrentAuth
from tenant_auth.core.responses import DataResponse, MessageData
from tenant_auth.schemas.auth import (
    AccountView,
    ChangePasswordRequest,
    DeleteAccountRequest,
    ProfileView,
    UpdateProfileRequest,
)

router = APIRouter()


@router.get("/me")
async def get_me(
    auth: CurrentAuth,
    service: AuthServiceDep,
) -> DataResponse[ProfileView]:
    """Profile with password and provider connection status."""
    profile = await service.get_profile(auth.user_id)
    return DataResponse(data=profile)


@router.patch("/me")
async def update_me(
    body: UpdateProfileRequest,
    auth: CurrentAuth,
    service: AuthServiceDep,
) -> DataResponse[AccountView]:
    account = await service.update_profile(auth.user_id, body.nickname)
    return DataResponse(data=account)


@router.post("/me/password")
async def change_password(
    body: ChangePasswordRequest,
    auth: CurrentAuth,
    service: AuthServiceDep,
) -> DataResponse[MessageData]:
    """Set or change the password.

    current_password is required once the account has a password; an
    OAuth-only account may set its first password without it.
    """
    await service.change_password(
        auth.user_id, body.new_password, body.current_password
    )
    return DataResponse(data=MessageData(message="Password updated"))


@router.delete("/me")
async def delete_me(
    body: DeleteAccountRequest,
    auth: CurrentAuth,
    service: AuthServiceDep,
) -> DataResponse[MessageData]:
    """Delete the account after re-confirming email and password."""
    await service.delete_account(auth.user_id, body.email, body.password)
    return DataResponse(data=MessageData(message="Account deleted"))


@router.delete("/me/oauth/{provider}")
async def disconnect_provider(
    provider: str,
    auth: CurrentAuth,
    service: AuthServiceDep,
) -> DataResponse[MessageData]:
    """Unlink an OAuth provider, unless it is the last way to sign in."""
    await service.disconnect_oauth_account(auth.user_id, provider)
    return DataResponse(data=MessageData(message=f"{provider} disconnected"))
