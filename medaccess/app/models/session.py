# medaccess/app/models/session.py
"""
Refresh tokens and signup invitation tokens.

Both are soft-deleted: rows stay in the table with a timestamp instead
of being removed, so recent sessions and invitations can be audited.
"""
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from medaccess.app.db.base import Base
from medaccess.app.models.user import UserType


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(Text, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    # NULL → session active
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")


class SignupToken(Base):
    """
    STWT (Signup Token With Type): a single-use invitation that fixes the
    account type of whoever signs up with it.

    Unconsumed  ⇔ consumer_id IS NULL AND expires_at IS NULL
    Consumed    ⇔ both set (expires_at = consumption time + grace window)
    """
    __tablename__ = "signup_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(128), unique=True, index=True, nullable=False)
    type = Column(Enum(UserType, native_enum=False), nullable=False)

    consumer_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
