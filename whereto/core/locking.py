"""Distributed selection locks using Redis.

The decision engine itself never serializes random selections: two
simultaneous asks produce two independent decisions. Callers that want at
most one selection in flight per (collection, user) wrap the call in
``SelectionLock.lock``. Locks expire on their own so a crashed request
cannot block the user forever.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from redis.asyncio import Redis


class SelectionLock:
    """Manages per-(collection, user) selection locks using Redis."""

    LOCK_PREFIX = "whereto:select-lock:"
    DEFAULT_TTL = 30  # seconds

    def __init__(self, redis: Redis, ttl: int | None = None):
        self.redis = redis
        self.ttl = ttl or self.DEFAULT_TTL

    def _lock_key(self, collection_id: str, user_id: str) -> str:
        """Generate the Redis key for a selection lock."""
        return f"{self.LOCK_PREFIX}{collection_id}:{user_id}"

    async def acquire(self, collection_id: str, user_id: str, token: str) -> bool:
        """Attempt to acquire the lock.

        Args:
            collection_id: Collection being decided over
            user_id: User asking for the selection
            token: Unique value identifying this holder

        Returns:
            True if acquired, False if another request holds it
        """
        key = self._lock_key(collection_id, user_id)
        lock_value = f"{token}:{datetime.now(UTC).isoformat()}"
        result = await self.redis.set(key, lock_value, nx=True, ex=self.ttl)
        return bool(result)

    async def release(self, collection_id: str, user_id: str, token: str) -> bool:
        """Release the lock if ``token`` still holds it."""
        key = self._lock_key(collection_id, user_id)
        current = await self.redis.get(key)
        if current and current.startswith(f"{token}:"):
            await self.redis.delete(key)
            return True
        return False

    async def is_locked(self, collection_id: str, user_id: str) -> dict | None:
        """Return lock info if locked, None otherwise."""
        key = self._lock_key(collection_id, user_id)
        current = await self.redis.get(key)
        if not current:
            return None

        token, _, locked_at = current.partition(":")
        return {
            "collection_id": collection_id,
            "user_id": user_id,
            "token": token,
            "locked_at": locked_at or None,
            "expires_in": await self.redis.ttl(key),
        }

    @asynccontextmanager
    async def lock(self, collection_id: str, user_id: str) -> AsyncGenerator[bool, None]:
        """Context manager around one selection.

        Yields:
            True if the lock was acquired, False if a selection is already running

        Example:
            async with selection_lock.lock("col-1", "user-1") as acquired:
                if not acquired:
                    raise SelectionInProgress()
                ...
        """
        token = str(uuid.uuid4())
        acquired = await self.acquire(collection_id, user_id, token)
        try:
            yield acquired
        finally:
            if acquired:
                await self.release(collection_id, user_id, token)
