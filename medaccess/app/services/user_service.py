# medaccess/app/services/user_service.py
"""
Storage operations on users and their owned records.

Every public method returns a Result; SQLAlchemy errors are logged and
turned into STORAGE_ERROR instead of escaping to the endpoint.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from pydantic.alias_generators import to_camel
from sqlalchemy import inspect, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from starlette.concurrency import run_in_threadpool

from medaccess.app.core import result as r
from medaccess.app.core.config import Settings
from medaccess.app.core.dates import utcnow
from medaccess.app.models import (
    Admin,
    EncryptionProfile,
    Profile,
    RefreshToken,
    User,
    UserType,
)
from medaccess.app.security import crypto, hashing

logger = logging.getLogger(__name__)

# Relations a caller may ask find_* to load
RELATIONS = ("profile", "admin", "encryption_profile")

_RELATION_HIDDEN_FIELDS = {"id", "user_id", "created_at", "updated_at", "deleted_at"}
_USER_HIDDEN_FIELDS = {
    "password",
    "refresh_tokens",
    "verified",
    "verification_token",
    "last_verification_request",
    "status",
    "type",
    "deleted_at",
}


@dataclass(frozen=True)
class CreatedUser:
    user: User
    # Shown to the user once, never stored
    passphrase: str


def _columns(obj: Any, hidden: Iterable[str] = ()) -> Dict[str, Any]:
    hidden = set(hidden)
    return {
        attr.key: getattr(obj, attr.key)
        for attr in inspect(obj).mapper.column_attrs
        if attr.key not in hidden
    }


class UserService:
    def __init__(self, db: AsyncSession, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    async def create(
        self,
        email: str,
        password: str,
        phone: Optional[str] = None,
        type: UserType = UserType.CLIENT,
        verified: bool = False,
        on_created: Optional[Callable[[User], Awaitable[r.Result[Any]]]] = None,
    ) -> r.Result[CreatedUser]:
        """
        Create a user with hashed password and encryption profile.

        Admins may be created pre-verified; every other account has to
        verify its phone number.

        ``on_created`` runs after the rows are flushed and before the
        commit, in the same transaction. If it fails everything is rolled
        back and its result is returned.
        """
        hashed = await run_in_threadpool(hashing.get_password_hash, password)
        envelope = await run_in_threadpool(
            crypto.create_encryption_profile, password, self.settings.ENCRYPTION_KDF_ITERATIONS
        )

        user = User(
            email=email.strip().lower(),
            phone=phone,
            password=hashed,
            type=type,
            verified=verified if type == UserType.ADMIN else False,
        )

        try:
            self.db.add(user)
            await self.db.flush()

            self.db.add(EncryptionProfile(
                user_id=user.id,
                recovery_key=envelope.keys.recovery_key,
                user_key=envelope.keys.user_key,
            ))
            if type == UserType.ADMIN:
                self.db.add(Admin(user_id=user.id))

            if on_created is not None:
                await self.db.flush()
                hooked = await on_created(user)
                if not hooked.success:
                    await self.db.rollback()
                    return hooked

            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return r.fail(r.DUPLICATE_EMAIL, "Email already exists")
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("User creation failed")
            return r.fail(r.STORAGE_ERROR, "Could not create user")

        logger.info("User %s created (type=%s)", user.id, user.type.value)
        return r.ok(CreatedUser(user=user, passphrase=envelope.passphrase))

    # ------------------------------------------------------------------
    # Lookup / update
    # ------------------------------------------------------------------
    async def _find(self, clause: Any, include: Sequence[str]) -> r.Result[User]:
        query = select(User).where(clause).execution_options(populate_existing=True)
        for name in include:
            if name not in RELATIONS:
                raise ValueError(f"Unknown relation: {name}")
            query = query.options(selectinload(getattr(User, name)))

        try:
            result = await self.db.execute(query)
            user = result.scalars().first()
        except SQLAlchemyError:
            logger.exception("User lookup failed")
            return r.fail(r.STORAGE_ERROR, "Could not load user")

        if not user:
            return r.fail(r.USER_NOT_FOUND, "User not found")
        return r.ok(user)

    async def find_by_id(self, user_id: str, include: Sequence[str] = ()) -> r.Result[User]:
        return await self._find(User.id == user_id, include)

    async def find_by_email(self, email: str, include: Sequence[str] = ()) -> r.Result[User]:
        return await self._find(User.email == email.strip().lower(), include)

    async def update_by_id(self, user_id: str, **values: Any) -> r.Result[None]:
        try:
            result = await self.db.execute(
                update(User).where(User.id == user_id).values(**values)
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("User update failed for %s", user_id)
            return r.fail(r.STORAGE_ERROR, "Could not update user")

        if result.rowcount == 0:
            return r.fail(r.USER_NOT_FOUND, "User not found")
        return r.ok()

    async def store_verification_code(
        self,
        user_id: str,
        hashed_code: str,
        now: datetime,
        not_before: Optional[datetime] = None,
    ) -> r.Result[bool]:
        """
        Save a new hashed code and request time.

        With ``not_before`` the write only happens if the previous request
        is older than it, in the same UPDATE statement. ``data`` is False
        when that condition blocked the write.
        """
        query = (
            update(User)
            .where(User.id == user_id)
            .returning(User.id)
            .execution_options(synchronize_session=False)
        )
        if not_before is not None:
            query = query.where(or_(
                User.last_verification_request.is_(None),
                User.last_verification_request <= not_before,
            ))

        try:
            result = await self.db.execute(
                query.values(verification_token=hashed_code, last_verification_request=now)
            )
            updated = result.first() is not None
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Storing verification code failed for %s", user_id)
            return r.fail(r.STORAGE_ERROR, "Could not update user")

        return r.ok(updated)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------
    async def find_profile_by_user_id(self, user_id: str) -> r.Result[Profile]:
        try:
            result = await self.db.execute(select(Profile).where(Profile.user_id == user_id))
            profile = result.scalars().first()
        except SQLAlchemyError:
            logger.exception("Profile lookup failed")
            return r.fail(r.STORAGE_ERROR, "Could not load profile")

        if not profile:
            return r.fail(r.PROFILE_NOT_FOUND, "There is no profile for this user")
        return r.ok(profile)

    async def create_profile(self, user: User, payload: Dict[str, Any]) -> r.Result[Profile]:
        """Store the profile step of the signup and mark the user completed."""
        existing = await self.find_profile_by_user_id(user.id)
        if existing.success:
            return r.fail(r.PROFILE_ALREADY_EXISTS, "Profile already exists")
        if existing.kind != r.PROFILE_NOT_FOUND:
            return existing

        profile = Profile(user_id=user.id, **payload)
        try:
            self.db.add(profile)
            await self.db.execute(update(User).where(User.id == user.id).values(completed=True))
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return r.fail(r.USER_NOT_FOUND, "User not found")
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Profile creation failed for %s", user.id)
            return r.fail(r.STORAGE_ERROR, "Could not create profile")

        return r.ok(profile)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    async def list_active_refresh_tokens(self, user_id: str) -> r.Result[List[RefreshToken]]:
        try:
            result = await self.db.execute(
                select(RefreshToken).where(
                    RefreshToken.user_id == user_id,
                    RefreshToken.deleted_at.is_(None),
                )
            )
        except SQLAlchemyError:
            logger.exception("Refresh token lookup failed for %s", user_id)
            return r.fail(r.STORAGE_ERROR, "Could not load sessions")
        return r.ok(list(result.scalars().all()))

    async def clear_previous_sessions(self, user: User) -> bool:
        """
        Soft-delete every active refresh token of ``user``.

        Access tokens already handed out stay valid until they expire
        unless they are also put on the denylist (see AuthService.logout).
        """
        try:
            await self.db.execute(
                update(RefreshToken)
                .where(RefreshToken.user_id == user.id, RefreshToken.deleted_at.is_(None))
                .values(deleted_at=utcnow())
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception("Clearing sessions failed for %s", user.id)
            return False
        return True

    # ------------------------------------------------------------------
    # Client projection
    # ------------------------------------------------------------------
    def sanitize(self, user: User) -> Dict[str, Any]:
        """
        Project a user for API responses.

        Drops credentials, session and verification internals, the
        type/status fields and null values. Only relations already loaded
        are included. The recovery key never leaves the server; the user
        key is sent hex-encoded.
        """
        state = inspect(user)
        data = _columns(user, _USER_HIDDEN_FIELDS)

        if "encryption_profile" not in state.unloaded and user.encryption_profile is not None:
            profile = _columns(user.encryption_profile, _RELATION_HIDDEN_FIELDS | {"recovery_key"})
            profile["user_key"] = user.encryption_profile.user_key.hex()
            data["encryption_profile"] = profile

        for name in ("profile", "admin"):
            if name not in state.unloaded and getattr(user, name) is not None:
                data[name] = _columns(getattr(user, name), _RELATION_HIDDEN_FIELDS)

        return _camelize({k: v for k, v in data.items() if v is not None})


def _camelize(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        to_camel(key): _camelize(value) if isinstance(value, dict) else value
        for key, value in data.items()
    }
