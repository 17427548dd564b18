# medaccess/app/services/auth_service.py
"""
Session lifecycle: signup, signin, token issuance, refresh rotation,
logout, and signup invitation tokens (STWT).

Concurrency notes:
- Clearing sessions is a single UPDATE but is not serialized against a
  concurrent signin; two devices signing in at once may both keep a
  session (last write wins).
- Refresh rotation relies on the same best-effort semantics.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from medaccess.app.core import result as r
from medaccess.app.core.config import Settings
from medaccess.app.core.dates import utcnow
from medaccess.app.models import RefreshToken, SignupToken, User, UserStatus, UserType
from medaccess.app.security import hashing, jwt
from medaccess.app.services.denylist import DenylistUnavailable, TokenDenylist
from medaccess.app.services.user_service import CreatedUser, UserService
from medaccess.app.services.verification_service import code_sent

logger = logging.getLogger(__name__)

# Signup process states exposed to the frontend
USER_NOT_CREATED = "USER_NOT_CREATED"
USER_NOT_VERIFIED = "USER_NOT_VERIFIED"
USER_NOT_COMPLETED = "USER_NOT_COMPLETED"
COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def can_hold_session(user: User) -> bool:
    return user.deleted_at is None and user.status == UserStatus.ACTIVE


class AuthService:
    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        denylist: TokenDenylist,
        users: Optional[UserService] = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.denylist = denylist
        self.users = users or UserService(db, settings)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------
    async def create_tokens(self, user: User) -> r.Result[TokenPair]:
        """Mint an access/refresh pair for ``user`` and persist the refresh token."""
        claims = {"id": user.id}
        pair = TokenPair(
            access_token=jwt.create_access_token(claims, self.settings),
            refresh_token=jwt.create_refresh_token(claims, self.settings),
        )

        try:
            self.db.add(RefreshToken(token=pair.refresh_token, user_id=user.id))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Persisting refresh token failed for %s", user.id)
            return r.fail(r.STORAGE_ERROR, "Could not create session")

        return r.ok(pair)

    def verify_access_token(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        return jwt.verify(token, self.settings.ACCESS_TOKEN_SECRET, self.settings.ALGORITHM)

    def verify_refresh_token(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        return jwt.verify(token, self.settings.REFRESH_TOKEN_SECRET, self.settings.ALGORITHM)

    async def is_denied(self, access_token: str) -> bool:
        """Raises DenylistUnavailable when the cache cannot answer."""
        return await self.denylist.contains(access_token)

    def _remaining_lifetime(self, access_token: str) -> int:
        exp = jwt.unverified_expiry(access_token)
        if exp is None:
            return self.settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        return max(1, exp - int(utcnow().timestamp()))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    async def signin(self, email: str, password: str, type: UserType = UserType.CLIENT) -> r.Result[TokenPair]:
        """
        Check credentials, ban previous sessions, issue a fresh pair.

        Unknown email, wrong password, wrong account type and a deleted or
        suspended account all come back as INVALID_CREDENTIALS, so the
        response does not reveal which emails are registered.
        """
        found = await self.users.find_by_email(email)
        if not found.success:
            if found.kind == r.USER_NOT_FOUND:
                return r.fail(r.INVALID_CREDENTIALS, "Invalid credentials")
            return found

        user = found.data
        if not user.password:
            return r.fail(
                r.PASSWORD_NOT_SET,
                "This account was created with a social login provider. Please use that "
                "provider or create a password for this account to sign in.",
            )

        try:
            matches = await run_in_threadpool(hashing.verify_password, password, user.password)
        except hashing.InvalidCredentialFormat:
            logger.error("Stored password for %s is malformed", user.id)
            matches = False

        if not matches or user.type != type or not can_hold_session(user):
            return r.fail(r.INVALID_CREDENTIALS, "Invalid credentials")

        # Access tokens of older sessions stay valid until they expire
        await self.users.clear_previous_sessions(user)

        return await self.create_tokens(user)

    async def logout(self, user: User, access_token: Optional[str]) -> r.Result[None]:
        """
        Soft-delete all refresh tokens and denylist ``access_token``.

        If the denylist write fails the refresh tokens are still gone; only
        the access token survives until its natural expiry. That outcome is
        reported as LOGOUT_FAILED rather than hidden.
        """
        if not await self.users.clear_previous_sessions(user):
            return r.fail(r.LOGOUT_FAILED, "Could not invalidate sessions")

        if not access_token:
            return r.fail(r.LOGOUT_FAILED, "No access token provided, it stays valid until it expires")

        try:
            await self.denylist.add(access_token, self._remaining_lifetime(access_token))
        except DenylistUnavailable:
            return r.fail(r.LOGOUT_FAILED, "Access token could not be revoked")

        logger.info("User %s logged out", user.id)
        return r.ok()

    async def refresh(self, access_token: Optional[str], refresh_token: str) -> r.Result[TokenPair]:
        """
        Rotate a session: the presented refresh token is consumed and a new
        pair is issued. Reusing the old refresh token afterwards fails.
        """
        claims = self.verify_refresh_token(refresh_token)
        if not claims:
            return r.fail(r.INVALID_REFRESH_TOKEN, "Invalid refresh token, cannot renew access token.")

        found = await self.users.find_by_id(claims["id"])
        if not found.success:
            return found
        user = found.data
        if not can_hold_session(user):
            logger.warning("Refresh refused for disabled account %s", user.id)
            return r.fail(r.INVALID_REFRESH_TOKEN, "Invalid refresh token, cannot renew access token.")

        active = await self.users.list_active_refresh_tokens(user.id)
        if not active.success:
            return active

        if not any(row.token == refresh_token for row in active.data):
            logger.warning("Refresh with an unknown or revoked token for %s", user.id)
            return r.fail(r.INVALID_REFRESH_TOKEN, "Invalid refresh token, cannot renew access token.")

        # Fail closed: no new tokens unless the old session is fully revoked
        logout = await self.logout(user, access_token)
        if not logout.success:
            return logout

        return await self.create_tokens(user)

    # ------------------------------------------------------------------
    # Signup
    # ------------------------------------------------------------------
    async def signup(
        self,
        email: str,
        password: str,
        phone: Optional[str] = None,
        stwt: Optional[str] = None,
    ) -> r.Result[CreatedUser]:
        """
        Create an account. Without ``stwt`` the account is a CLIENT; with a
        usable invitation its type comes from the invitation.

        The invitation is claimed in the transaction that inserts the user,
        so of two signups racing on one invitation only one is committed.
        """
        type = UserType.CLIENT
        on_created = None
        if stwt:
            usable = await self.is_usable_stwt(stwt)
            if not usable.success:
                return usable
            type = usable.data["type"]

            async def claim(user: User) -> r.Result[None]:
                return await self._claim_stwt(stwt, user.id)

            on_created = claim

        return await self.users.create(
            email=email, password=password, phone=phone, type=type, on_created=on_created
        )

    # ------------------------------------------------------------------
    # Signup tokens (STWT)
    # ------------------------------------------------------------------
    async def create_stwt(self, type: UserType) -> r.Result[SignupToken]:
        signup_token = SignupToken(token=secrets.token_urlsafe(32), type=type)
        try:
            self.db.add(signup_token)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Signup token creation failed")
            return r.fail(r.STORAGE_ERROR, "Could not create signup token")
        return r.ok(signup_token)

    async def find_stwt_by_token(self, token: Optional[str]) -> r.Result[SignupToken]:
        if not token:
            return r.fail(r.STWT_NOT_FOUND, "Signup token not found")
        try:
            result = await self.db.execute(
                select(SignupToken)
                .where(SignupToken.token == token)
                .execution_options(populate_existing=True)
            )
            signup_token = result.scalars().first()
        except SQLAlchemyError:
            logger.exception("Signup token lookup failed")
            return r.fail(r.STORAGE_ERROR, "Could not load signup token")

        if not signup_token:
            return r.fail(r.STWT_NOT_FOUND, "Signup token not found")
        return r.ok(signup_token)

    async def is_usable_stwt(self, token: Optional[str]) -> r.Result[Dict[str, UserType]]:
        found = await self.find_stwt_by_token(token)
        if not found.success:
            if found.kind == r.STWT_NOT_FOUND:
                return r.fail(r.INVALID_SIGNUP_TOKEN, "Invalid signup token")
            return found

        signup_token = found.data
        if signup_token.consumer_id is not None or signup_token.expires_at is not None:
            return r.fail(r.INVALID_SIGNUP_TOKEN, "Invalid signup token")
        return r.ok({"type": signup_token.type})

    async def _claim_stwt(self, token: str, consumer_id: str) -> r.Result[None]:
        """
        Stamp an unconsumed invitation with its consumer. Does not commit.

        The UPDATE only matches while the token is unconsumed; a token
        claimed by someone else leaves no row to update.
        """
        expires_at = utcnow() + timedelta(hours=self.settings.STWT_GRACE_HOURS)
        result = await self.db.execute(
            update(SignupToken)
            .where(
                SignupToken.token == token,
                SignupToken.consumer_id.is_(None),
                SignupToken.expires_at.is_(None),
            )
            .values(consumer_id=consumer_id, expires_at=expires_at)
            .returning(SignupToken.id)
            .execution_options(synchronize_session=False)
        )
        if result.first() is None:
            return r.fail(r.INVALID_SIGNUP_TOKEN, "Invalid signup token")
        return r.ok()

    async def delete_stwt(self, token: str, consumer_id: str) -> r.Result[None]:
        """
        Consume an invitation. The row is kept for a grace window
        (STWT_GRACE_HOURS) and can be purged afterwards.
        """
        found = await self.find_stwt_by_token(token)
        if not found.success:
            return found

        try:
            claimed = await self._claim_stwt(token, consumer_id)
            if not claimed.success:
                await self.db.rollback()
                return claimed
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Consuming signup token failed")
            return r.fail(r.STORAGE_ERROR, "Could not consume signup token")

        return r.ok()

    async def signup_process_info(self, token: Optional[str]) -> r.Result[Dict[str, Any]]:
        """Where the invited user stands in the multi-step signup."""
        found = await self.find_stwt_by_token(token)
        if not found.success:
            return found
        signup_token = found.data

        if signup_token.expires_at is None or signup_token.consumer_id is None:
            return r.ok({"status": USER_NOT_CREATED})

        owner = await self.users.find_by_id(signup_token.consumer_id)
        if not owner.success:
            # Consumed token without its user: data inconsistency
            logger.error("Signup token consumed by missing user %s", signup_token.consumer_id)
            return owner
        user = owner.data

        if not user.verified:
            return r.ok({
                "status": USER_NOT_VERIFIED,
                "code_sent": code_sent(user, self.settings),
            })

        if not user.completed:
            return r.ok({"status": USER_NOT_COMPLETED})

        return r.ok({"status": COMPLETED})
