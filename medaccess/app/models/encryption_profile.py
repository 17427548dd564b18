# medaccess/app/models/encryption_profile.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, LargeBinary, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from medaccess.app.db.base import Base


class EncryptionProfile(Base):
    """
    Two wrapped copies of the user's master data key.

    Server never sees the master key or the recovery passphrase in clear
    after signup returns.
    """
    __tablename__ = "encryption_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)

    # salt ‖ iv ‖ AES-GCM(master key), under the recovery passphrase
    recovery_key = Column(LargeBinary, nullable=False)
    # salt ‖ iv ‖ AES-GCM(master key), under the account password
    user_key = Column(LargeBinary, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="encryption_profile")
