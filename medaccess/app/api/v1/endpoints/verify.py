# medaccess/app/api/v1/endpoints/verify.py
from fastapi import APIRouter, Depends, status

from medaccess.app.api import deps
from medaccess.app.api.errors import raise_for_result
from medaccess.app.core import result as r
from medaccess.app.schemas.user import ApiResponse, VerifyCallbackRequest
from medaccess.app.services.verification_service import VerificationService

router = APIRouter()

_STATUS = {
    r.ALREADY_VERIFIED: status.HTTP_400_BAD_REQUEST,
    r.TOO_MANY_REQUESTS: status.HTTP_429_TOO_MANY_REQUESTS,
    r.MESSAGE_NOT_SENT: status.HTTP_502_BAD_GATEWAY,
    r.MISSING_CODE: status.HTTP_400_BAD_REQUEST,
    r.NO_PENDING_CODE: status.HTTP_400_BAD_REQUEST,
    r.CODE_EXPIRED: status.HTTP_400_BAD_REQUEST,
    r.INVALID_CODE: status.HTTP_400_BAD_REQUEST,
    r.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


@router.get("", response_model=ApiResponse[None])
async def request_code(
    ctx: deps.AuthenticatedContext = Depends(deps.get_auth_context),
    verification: VerificationService = Depends(deps.get_verification_service),
):
    """Text a fresh verification code to the account's phone number."""
    result = await verification.request_code(ctx.user)
    if not result.success:
        raise_for_result(result, _STATUS)
    return ApiResponse()


@router.post("/callback", response_model=ApiResponse[str])
async def confirm_code(
    body: VerifyCallbackRequest,
    ctx: deps.AuthenticatedContext = Depends(deps.get_auth_context),
    verification: VerificationService = Depends(deps.get_verification_service),
):
    result = await verification.confirm_code(ctx.user, body.code)
    if not result.success:
        raise_for_result(result, _STATUS)
    return ApiResponse(data=result.data)
