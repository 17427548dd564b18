# medaccess/app/db/base.py
"""
SQLAlchemy declarative base.

Every ORM model inherits from :class:`Base`; importing
``medaccess.app.models`` registers all tables on ``Base.metadata``.
"""
from sqlalchemy.orm import DeclarativeBase


# ─────────────────────────────────────────────────────────────────────────────
# Declarative Base for ORM Models
# ─────────────────────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Usage:
        class User(Base):
            __tablename__ = "users"
            id = Column(String(36), primary_key=True)
            ...
    """
    pass
