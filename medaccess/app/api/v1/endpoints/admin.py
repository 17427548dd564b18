# medaccess/app/api/v1/endpoints/admin.py
"""
Admin-only endpoints. Every route requires an authenticated, verified,
completed account of type ADMIN with its admin record.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from medaccess.app.api import deps
from medaccess.app.api.errors import raise_for_result
from medaccess.app.core import result as r
from medaccess.app.schemas.user import ApiResponse
from medaccess.app.services.admin_service import AdminService
from medaccess.app.services.user_service import UserService

router = APIRouter(dependencies=[Depends(deps.require_admin)])


@router.get("/me", response_model=ApiResponse[Dict[str, Any]])
async def read_me_as_admin(
    ctx: deps.AuthenticatedContext = Depends(deps.require_admin),
    users: UserService = Depends(deps.get_user_service),
):
    return ApiResponse(data=users.sanitize(ctx.user))


@router.get("/all", response_model=ApiResponse[List[Dict[str, Any]]])
async def read_admins(
    skip: int = 0,
    limit: int = 100,
    admins: AdminService = Depends(deps.get_admin_service),
    users: UserService = Depends(deps.get_user_service),
):
    result = await admins.find_all(skip=skip, limit=limit)
    if not result.success:
        raise_for_result(result)
    return ApiResponse(data=[users.sanitize(admin) for admin in result.data])


@router.get("/{user_id}", response_model=ApiResponse[Dict[str, Any]])
async def read_admin(
    user_id: str,
    admins: AdminService = Depends(deps.get_admin_service),
    users: UserService = Depends(deps.get_user_service),
):
    result = await admins.find_by_id(user_id)
    if not result.success:
        raise_for_result(result, {r.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND})
    return ApiResponse(data=users.sanitize(result.data))
