# medaccess/app/api/deps.py
"""
Request dependencies.

Identity is resolved once per request into an immutable
``AuthenticatedContext`` that handlers receive as a parameter; admin,
verified and completed requirements are layered on top of it.
"""
import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from medaccess.app.core.config import Settings, get_settings
from medaccess.app.db.session import get_db
from medaccess.app.models import User, UserType
from medaccess.app.services import messaging
from medaccess.app.services.admin_service import AdminService
from medaccess.app.services.auth_service import AuthService, can_hold_session
from medaccess.app.services.denylist import DenylistUnavailable, TokenDenylist, get_token_denylist
from medaccess.app.services.messaging import MessageSender
from medaccess.app.services.user_service import RELATIONS, UserService
from medaccess.app.services.verification_service import VerificationService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedContext:
    user: User
    access_token: str


# ─────────────────────────────────────────────────────────────
# Collaborators
# ─────────────────────────────────────────────────────────────
def get_denylist(settings: Settings = Depends(get_settings)) -> TokenDenylist:
    return get_token_denylist(settings)


def get_message_sender(settings: Settings = Depends(get_settings)) -> MessageSender:
    return messaging.get_message_sender(settings)


def get_user_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserService:
    return UserService(db, settings)


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    denylist: TokenDenylist = Depends(get_denylist),
    users: UserService = Depends(get_user_service),
) -> AuthService:
    return AuthService(db, settings, denylist, users)


def get_verification_service(
    users: UserService = Depends(get_user_service),
    sender: MessageSender = Depends(get_message_sender),
    settings: Settings = Depends(get_settings),
) -> VerificationService:
    return VerificationService(users, sender, settings)


def get_admin_service(db: AsyncSession = Depends(get_db)) -> AdminService:
    return AdminService(db)


# ─────────────────────────────────────────────────────────────
# Identity
# ─────────────────────────────────────────────────────────────
def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
    users: UserService = Depends(get_user_service),
) -> AuthenticatedContext:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Missing access token")
    token = credentials.credentials

    claims = auth.verify_access_token(token)
    if not claims:
        raise _unauthorized("Could not validate credentials")

    try:
        denied = await auth.is_denied(token)
    except DenylistUnavailable:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": "Authentication temporarily unavailable"},
        )
    if denied:
        raise _unauthorized("Access token has been revoked")

    found = await users.find_by_id(claims["id"], include=RELATIONS)
    if not found.success:
        raise _unauthorized("Could not validate credentials")

    user = found.data
    if not can_hold_session(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail={"message": "Account disabled"})

    return AuthenticatedContext(user=user, access_token=token)


def require_verified(ctx: AuthenticatedContext = Depends(get_auth_context)) -> AuthenticatedContext:
    if not ctx.user.verified:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail={"message": "User not verified"})
    return ctx


def require_completed(ctx: AuthenticatedContext = Depends(require_verified)) -> AuthenticatedContext:
    if not ctx.user.completed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail={"message": "User profile not completed"})
    return ctx


def require_admin(ctx: AuthenticatedContext = Depends(require_completed)) -> AuthenticatedContext:
    if ctx.user.type != UserType.ADMIN or ctx.user.admin is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail={"message": "Admin access required"})
    return ctx
