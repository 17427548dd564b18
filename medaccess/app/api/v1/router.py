# medaccess/app/api/v1/router.py
from fastapi import APIRouter

from medaccess.app.api.v1.endpoints import admin, auth, users, verify

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(verify.router, prefix="/auth/verify", tags=["verify"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
