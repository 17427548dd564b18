# medaccess/app/services/admin_service.py
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from medaccess.app.core import result as r
from medaccess.app.models import User, UserType

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def _query(self):
        return (
            select(User)
            .where(User.type == UserType.ADMIN, User.deleted_at.is_(None))
            .options(selectinload(User.admin), selectinload(User.profile))
        )

    async def find_all(self, skip: int = 0, limit: int = 100) -> r.Result[List[User]]:
        try:
            result = await self.db.execute(
                self._query().order_by(User.created_at).offset(skip).limit(limit)
            )
        except SQLAlchemyError:
            logger.exception("Listing admins failed")
            return r.fail(r.STORAGE_ERROR, "Could not list admins")
        return r.ok(list(result.scalars().all()))

    async def find_by_id(self, user_id: str) -> r.Result[User]:
        try:
            result = await self.db.execute(self._query().where(User.id == user_id))
            admin = result.scalars().first()
        except SQLAlchemyError:
            logger.exception("Admin lookup failed")
            return r.fail(r.STORAGE_ERROR, "Could not load admin")

        if not admin:
            return r.fail(r.USER_NOT_FOUND, "User not found")
        return r.ok(admin)
