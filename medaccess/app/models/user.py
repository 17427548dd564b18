# medaccess/app/models/user.py
import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from medaccess.app.db.base import Base


class UserType(str, enum.Enum):
    CLIENT = "CLIENT"
    ADMIN = "ADMIN"


class UserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(32), nullable=True)

    # salt:scrypt-key. NULL for accounts created through a social provider
    password = Column(String(255), nullable=True)

    type = Column(Enum(UserType, native_enum=False), nullable=False, default=UserType.CLIENT)
    status = Column(Enum(UserStatus, native_enum=False), nullable=False, default=UserStatus.ACTIVE)

    # --- Phone verification state ---
    # verification_token != NULL implies verified == False
    verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(255), nullable=True)
    last_verification_request = Column(DateTime(timezone=True), nullable=True)

    # True once the profile step of the signup has been submitted
    completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    profile = relationship("Profile", back_populates="user", uselist=False, lazy="raise")
    admin = relationship("Admin", back_populates="user", uselist=False, lazy="raise")
    encryption_profile = relationship("EncryptionProfile", back_populates="user", uselist=False, lazy="raise")
    refresh_tokens = relationship("RefreshToken", back_populates="user", lazy="raise")
