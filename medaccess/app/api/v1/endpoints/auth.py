# medaccess/app/api/v1/endpoints/auth.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from medaccess.app.api import deps
from medaccess.app.api.errors import http_error, raise_for_result
from medaccess.app.core import result as r
from medaccess.app.models import UserType
from medaccess.app.schemas.user import (
    ApiResponse,
    RefreshRequest,
    SigninRequest,
    SignupInfo,
    SignupRequest,
    SignupResult,
    TokenPair,
)
from medaccess.app.services.auth_service import AuthService

router = APIRouter()


def _pair(tokens) -> TokenPair:
    return TokenPair(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.get("/health")
async def health():
    return "OK"


@router.post("/signup", response_model=ApiResponse[SignupResult], status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest,
    # Signup Token With Type: an invitation that fixes the account type.
    # Without it the account is always a CLIENT.
    stwt: Optional[str] = Query(None),
    auth: AuthService = Depends(deps.get_auth_service),
):
    result = await auth.signup(email=body.email, password=body.password, phone=body.phone, stwt=stwt)
    if not result.success:
        raise_for_result(result, {
            r.INVALID_SIGNUP_TOKEN: status.HTTP_401_UNAUTHORIZED,
            r.DUPLICATE_EMAIL: status.HTTP_409_CONFLICT,
        })

    return ApiResponse(data=SignupResult(id=result.data.user.id, passphrase=result.data.passphrase))


@router.get(
    "/signup/info",
    response_model=ApiResponse[SignupInfo],
    response_model_exclude_none=True,
)
async def signup_process_info(
    stwt: str = Query(...),
    auth: AuthService = Depends(deps.get_auth_service),
):
    """Lets the frontend resume a multi-step signup started from an invitation."""
    result = await auth.signup_process_info(stwt)
    if not result.success:
        raise_for_result(result, {
            r.STWT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
            r.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
        })
    return ApiResponse(data=SignupInfo(**result.data))


@router.post("/signin", response_model=ApiResponse[TokenPair])
async def signin(
    body: SigninRequest,
    type: UserType = Query(UserType.CLIENT),
    auth: AuthService = Depends(deps.get_auth_service),
):
    result = await auth.signin(body.email, body.password, type)
    if not result.success:
        raise_for_result(result, {
            r.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
            r.PASSWORD_NOT_SET: status.HTTP_403_FORBIDDEN,
        })
    return ApiResponse(data=_pair(result.data))


@router.get("/signout", response_model=ApiResponse[None])
async def signout(
    ctx: deps.AuthenticatedContext = Depends(deps.get_auth_context),
    auth: AuthService = Depends(deps.get_auth_service),
):
    result = await auth.logout(ctx.user, ctx.access_token)
    if not result.success:
        raise_for_result(result, {r.LOGOUT_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR})
    return ApiResponse()


@router.post("/refresh", response_model=ApiResponse[TokenPair])
async def refresh(
    body: RefreshRequest,
    auth: AuthService = Depends(deps.get_auth_service),
):
    if not body.refresh_token:
        raise http_error(status.HTTP_401_UNAUTHORIZED, "Please provide a refresh token.")

    result = await auth.refresh(body.access_token, body.refresh_token)
    if not result.success:
        # LOGOUT_FAILED: the old refresh token is already revoked but the
        # access token could not be denylisted; no new pair is issued.
        raise_for_result(result, {
            r.INVALID_REFRESH_TOKEN: status.HTTP_401_UNAUTHORIZED,
            r.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
            r.LOGOUT_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
        })
    return ApiResponse(data=_pair(result.data))
