import re
from typing import List, Optional, Tuple

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from medaccess.app import models  # noqa: F401
from medaccess.app.core import result as r
from medaccess.app.core.config import Settings, get_settings
from medaccess.app.db.base import Base
from medaccess.app.db.session import create_session_factory, get_db
from medaccess.app.services.auth_service import AuthService
from medaccess.app.services.denylist import DenylistUnavailable
from medaccess.app.services.user_service import UserService
from medaccess.app.services.verification_service import VerificationService


class FakeDenylist:
    """In-memory stand-in for the Redis denylist."""

    def __init__(self) -> None:
        self.tokens = {}
        self.fail = False

    async def add(self, token: str, ttl_seconds: int) -> None:
        if self.fail:
            raise DenylistUnavailable("redis down")
        self.tokens[token] = ttl_seconds

    async def contains(self, token: str) -> bool:
        if self.fail:
            raise DenylistUnavailable("redis down")
        return token in self.tokens


class RecordingSender:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str]] = []
        self.fail = False

    async def send(self, body: str, target: str):
        if self.fail:
            return r.fail(r.MESSAGE_NOT_SENT, "gateway down")
        self.sent.append((body, target))
        return r.ok()

    def last_code(self) -> Optional[str]:
        if not self.sent:
            return None
        return re.search(r"(\d{6})", self.sent[-1][0]).group(1)


def make_settings(**overrides) -> Settings:
    values = {"ENVIRONMENT": "test", "DATABASE_URL": "sqlite+aiosqlite://"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def denylist() -> FakeDenylist:
    return FakeDenylist()


@pytest.fixture()
def sender() -> RecordingSender:
    return RecordingSender()


# ─────────────────────────────────────────────────────────────
# Service-level fixtures: in-memory SQLite, one per test
# ─────────────────────────────────────────────────────────────
@pytest_asyncio.fixture()
async def db():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with create_session_factory(engine)() as session:
        yield session

    await engine.dispose()


@pytest.fixture()
def users(db, settings) -> UserService:
    return UserService(db, settings)


@pytest.fixture()
def auth(db, settings, denylist, users) -> AuthService:
    return AuthService(db, settings, denylist, users)


@pytest.fixture()
def verification(users, sender, settings) -> VerificationService:
    return VerificationService(users, sender, settings)


# ─────────────────────────────────────────────────────────────
# API fixtures: file-backed SQLite so every request loop can connect
# ─────────────────────────────────────────────────────────────
@pytest.fixture()
def client(tmp_path, settings, denylist, sender):
    from medaccess.app.api import deps
    from medaccess.app.main import app

    db_path = tmp_path / "api.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    factory = create_session_factory(engine)

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[deps.get_denylist] = lambda: denylist
    app.dependency_overrides[deps.get_message_sender] = lambda: sender

    yield TestClient(app)

    app.dependency_overrides.clear()
