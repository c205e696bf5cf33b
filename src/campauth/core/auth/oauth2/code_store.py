# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Short-lived storage for pending authorization codes.

A code is consumed exactly once: ``get_and_delete`` removes the entry in the
same step that reads it, so a second exchange attempt always misses.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime

from beartype import beartype
from pydantic import ValidationError

from ....models.base import utc_now
from ....models.oauth2 import AuthorizationCodeEntry
from ...cache import Cache
from ...logging_utils import get_logger

logger = get_logger(__name__)


class AuthorizationCodeStore(ABC):
    """Storage contract for pending authorization codes."""

    @abstractmethod
    async def put(self, entry: AuthorizationCodeEntry, ttl_seconds: int) -> None:
        """Store a new code entry."""

    @abstractmethod
    async def get_and_delete(self, code: str) -> AuthorizationCodeEntry | None:
        """Atomically read and remove a code entry."""

    @abstractmethod
    async def sweep(self, now: datetime) -> int:
        """Purge expired entries and return how many were removed."""


class InMemoryAuthorizationCodeStore(AuthorizationCodeStore):
    """Process-local code store guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._entries: dict[str, AuthorizationCodeEntry] = {}
        self._lock = asyncio.Lock()

    @beartype
    async def put(self, entry: AuthorizationCodeEntry, ttl_seconds: int) -> None:
        async with self._lock:
            self._entries[entry.code] = entry

    @beartype
    async def get_and_delete(self, code: str) -> AuthorizationCodeEntry | None:
        async with self._lock:
            return self._entries.pop(code, None)

    @beartype
    async def sweep(self, now: datetime) -> int:
        async with self._lock:
            expired = [c for c, e in self._entries.items() if e.is_expired(now)]
            for code in expired:
                del self._entries[code]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RedisAuthorizationCodeStore(AuthorizationCodeStore):
    """Code store shared across instances; Redis TTLs handle expiry."""

    KEY_PREFIX = "oauth2:code:"

    def __init__(self, cache: Cache) -> None:
        self._cache = cache

    def _key(self, code: str) -> str:
        return f"{self.KEY_PREFIX}{code}"

    @beartype
    async def put(self, entry: AuthorizationCodeEntry, ttl_seconds: int) -> None:
        await self._cache.set(
            self._key(entry.code), entry.model_dump(mode="json"), ttl_seconds
        )

    @beartype
    async def get_and_delete(self, code: str) -> AuthorizationCodeEntry | None:
        data = await self._cache.getdel(self._key(code))
        if data is None:
            return None
        try:
            return AuthorizationCodeEntry.model_validate(data)
        except ValidationError:
            logger.warning("Discarding malformed authorization code entry")
            return None

    @beartype
    async def sweep(self, now: datetime) -> int:
        # Keys expire on their own
        return 0


async def run_periodic_sweep(store: AuthorizationCodeStore, interval: int) -> None:
    """Sweep expired codes every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await store.sweep(utc_now())
        except Exception:
            logger.exception("Authorization code sweep failed")
            continue
        if removed:
            logger.debug("Swept %d expired authorization codes", removed)
