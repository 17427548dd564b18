# medaccess/app/services/denylist.py
"""
Access-token denylist backed by Redis.

An access token is stateless until it expires; logging out or rotating a
session writes it here so the auth dependency can reject it early. Keys
expire together with the token, so the set never grows unbounded.
"""
import hashlib
import logging
from typing import Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from medaccess.app.core.config import Settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "denylist:access:"


class DenylistUnavailable(Exception):
    """The cache could not be reached or refused the command."""


class TokenDenylist(Protocol):
    async def add(self, token: str, ttl_seconds: int) -> None: ...

    async def contains(self, token: str) -> bool: ...


def _key(token: str) -> str:
    # Store a digest, not the bearer token itself
    return KEY_PREFIX + hashlib.sha256(token.encode("utf-8")).hexdigest()


class RedisTokenDenylist:
    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisTokenDenylist":
        client = redis.from_url(
            settings.REDIS_URL,
            max_connections=20,
            socket_connect_timeout=5,
            socket_timeout=10,
        )
        return cls(client)

    async def add(self, token: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(_key(token), "1", ex=max(1, int(ttl_seconds)))
        except RedisError as e:
            logger.error("Denylist write failed: %s", e)
            raise DenylistUnavailable(str(e)) from e

    async def contains(self, token: str) -> bool:
        try:
            return bool(await self._client.exists(_key(token)))
        except RedisError as e:
            logger.error("Denylist lookup failed: %s", e)
            raise DenylistUnavailable(str(e)) from e

    async def close(self) -> None:
        await self._client.aclose()


_denylist: Optional[RedisTokenDenylist] = None


def get_token_denylist(settings: Settings) -> RedisTokenDenylist:
    """Process-wide denylist sharing one connection pool."""
    global _denylist
    if _denylist is None:
        _denylist = RedisTokenDenylist.from_settings(settings)
    return _denylist


async def close_token_denylist() -> None:
    global _denylist
    if _denylist is not None:
        await _denylist.close()
        _denylist = None
