# medaccess/app/services/verification_service.py
"""
Phone verification by numeric code.

    UNVERIFIED_NO_CODE → CODE_SENT → VERIFIED
                             ↓  ↑
                        CODE_EXPIRED

Only the scrypt hash of a code is stored. A new code can be requested once
per VERIFICATION_RESEND_SECONDS in production, and a code is accepted for
VERIFICATION_CODE_TTL_SECONDS after it was requested.
"""
import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Any, Optional

from starlette.concurrency import run_in_threadpool

from medaccess.app.core import result as r
from medaccess.app.core.config import Settings
from medaccess.app.core.dates import date_is_expired, utcnow
from medaccess.app.models import User
from medaccess.app.security import hashing
from medaccess.app.services.messaging import MessageSender
from medaccess.app.services.user_service import UserService

logger = logging.getLogger(__name__)


def create_numeric_code(length: int = 6) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(length))


def code_sent(user: User, settings: Settings) -> bool:
    """A code is pending and still young enough to be confirmed."""
    return bool(
        user.verification_token
        and user.last_verification_request
        and not date_is_expired(user.last_verification_request, settings.VERIFICATION_CODE_TTL_SECONDS)
    )


class VerificationService:
    def __init__(self, users: UserService, sender: MessageSender, settings: Settings) -> None:
        self.users = users
        self.sender = sender
        self.settings = settings

    async def request_code(self, user: User) -> r.Result[Any]:
        """
        Generate, store and text a new code.

        If sending fails the stored code is kept; the user simply asks
        for another one.
        """
        if user.verified:
            return r.fail(r.ALREADY_VERIFIED, "User already verified")

        now = utcnow()
        not_before: Optional[datetime] = None
        if self.settings.is_production:
            not_before = now - timedelta(seconds=self.settings.VERIFICATION_RESEND_SECONDS)
            if user.last_verification_request and not date_is_expired(
                user.last_verification_request, self.settings.VERIFICATION_RESEND_SECONDS, now=now
            ):
                return r.fail(r.TOO_MANY_REQUESTS, "Too many requests")

        code = create_numeric_code(self.settings.VERIFICATION_CODE_LENGTH)
        hashed_code = await run_in_threadpool(hashing.hash, code)

        stored = await self.users.store_verification_code(user.id, hashed_code, now, not_before=not_before)
        if not stored.success:
            return stored
        if not stored.data:
            # Another request for this user won the race
            return r.fail(r.TOO_MANY_REQUESTS, "Too many requests")

        user.verification_token = hashed_code
        user.last_verification_request = now

        sending = await self.sender.send(body=f"Your verification code is {code}", target=user.phone)
        if not sending.success:
            logger.warning("Verification code for %s stored but not delivered", user.id)
            return sending

        return r.ok()

    async def confirm_code(self, user: User, code: Optional[str]) -> r.Result[Any]:
        if not code:
            return r.fail(r.MISSING_CODE, "Verification code is required")
        if user.verified:
            return r.fail(r.ALREADY_VERIFIED, "User already verified")
        if not user.verification_token:
            return r.fail(r.NO_PENDING_CODE, "User verification token not found")

        if user.last_verification_request and date_is_expired(
            user.last_verification_request, self.settings.VERIFICATION_CODE_TTL_SECONDS
        ):
            return r.fail(r.CODE_EXPIRED, "Verification code expired")

        try:
            matches = await run_in_threadpool(hashing.compare, code.strip(), user.verification_token)
        except hashing.InvalidCredentialFormat:
            logger.error("Stored verification token for %s is malformed", user.id)
            matches = False
        if not matches:
            return r.fail(r.INVALID_CODE, "Invalid verification code")

        updated = await self.users.update_by_id(
            user.id,
            verified=True,
            verification_token=None,
            last_verification_request=None,
        )
        if not updated.success:
            return updated

        user.verified = True
        user.verification_token = None
        user.last_verification_request = None
        logger.info("User %s verified", user.id)
        return r.ok("User verified successfully")
