# medaccess/app/api/v1/endpoints/users.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from medaccess.app.api import deps
from medaccess.app.api.errors import raise_for_result
from medaccess.app.core import result as r
from medaccess.app.schemas.user import ApiResponse, ProfileCreate
from medaccess.app.services.user_service import RELATIONS, UserService

router = APIRouter()


@router.get("/me", response_model=ApiResponse[Dict[str, Any]])
async def read_me(
    ctx: deps.AuthenticatedContext = Depends(deps.get_auth_context),
    users: UserService = Depends(deps.get_user_service),
):
    return ApiResponse(data=users.sanitize(ctx.user))


@router.post("/me/profile", response_model=ApiResponse[Dict[str, Any]], status_code=status.HTTP_201_CREATED)
async def create_profile(
    body: ProfileCreate,
    ctx: deps.AuthenticatedContext = Depends(deps.require_verified),
    users: UserService = Depends(deps.get_user_service),
):
    """Last signup step: personal details. Marks the account completed."""
    result = await users.create_profile(ctx.user, body.to_columns())
    if not result.success:
        raise_for_result(result, {
            r.PROFILE_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
            r.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
        })

    reloaded = await users.find_by_id(ctx.user.id, include=RELATIONS)
    if not reloaded.success:
        raise_for_result(reloaded, {r.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND})
    return ApiResponse(data=users.sanitize(reloaded.data))
