# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Redis caching layer with TTL support."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import redis.asyncio as redis
from attrs import field, frozen
from beartype import beartype

from .config import Settings, get_settings

__all__ = [
    "Cache",
    "RedisType",
]

if TYPE_CHECKING:
    from redis.asyncio import Redis as RedisType
else:
    RedisType = redis.Redis


@frozen
class CacheConfig:
    """Immutable cache configuration."""

    url: str = field()
    max_connections: int = field(default=10)
    decode_responses: bool = field(default=True)


class Cache:
    """Redis cache manager with async support.

    The constructor optionally accepts an already-created ``redis.asyncio.Redis``
    instance; :py:meth:`connect` is then a no-op.
    """

    def __init__(
        self,
        redis_client: RedisType | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._redis: RedisType | None = redis_client
        self._config = CacheConfig(url=(settings or get_settings()).redis_url)

    @beartype
    async def connect(self) -> None:
        """Create Redis connection pool."""
        if self._redis is not None:
            return

        self._redis = redis.from_url(
            self._config.url,
            max_connections=self._config.max_connections,
            decode_responses=self._config.decode_responses,
        )

    @beartype
    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._redis is None:
            return

        await self._redis.aclose()
        self._redis = None

    @beartype
    def _client(self) -> RedisType:
        if self._redis is None:
            raise RuntimeError("Cache not connected")
        return self._redis

    @staticmethod
    def _decode(value: Any) -> Any:
        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    @beartype
    async def getdel(self, key: str) -> Any | None:
        """Atomically read and delete a key."""
        return self._decode(await self._client().getdel(key))

    @beartype
    async def set(self, key: str, value: Any, ttl: int | timedelta) -> bool:
        """Set value in cache with a TTL."""
        if isinstance(ttl, int):
            ttl = timedelta(seconds=ttl)

        # Serialize complex objects to JSON
        if not isinstance(value, (str, int, float, bytes)):
            value = json.dumps(value, default=str)

        result = await self._client().setex(key, ttl, value)
        return bool(result)

