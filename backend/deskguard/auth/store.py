"""Permission store: load/save a user's permission override document.

Stores:
  InMemoryPermissionStore → dict-backed (tests, scripts)
  SqlPermissionStore      → `users.custom_permissions` via an AsyncSession
  CachedPermissionStore   → Redis read-through cache in front of another store

`save` always overwrites; merging is the editor's job (it seeds its form
from the resolved effective set and submits the whole edited document).
Loaded documents are copies, so callers can't mutate stored state.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol

import redis.asyncio as redis
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from deskguard.middleware.exceptions import ResourceNotFoundError, StoreUnavailableError
from deskguard.models.user import User

logger = logging.getLogger(__name__)

Override = dict[str, dict[str, Any]]


def _copy_override(override: Any) -> Optional[Override]:
    """Snapshot a stored document; anything that isn't a mapping counts as absent."""
    if override is None:
        return None
    if not isinstance(override, Mapping):
        logger.debug(f"Ignoring stored override of type {type(override).__name__}")
        return None
    return {
        module: dict(actions) if isinstance(actions, Mapping) else copy.deepcopy(actions)
        for module, actions in override.items()
    }


class PermissionStore(Protocol):
    async def load(self, user_id: str) -> Optional[Override]:
        ...

    async def save(self, user_id: str, override: Mapping[str, Any]) -> None:
        ...


class InMemoryPermissionStore:
    def __init__(self, overrides: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self._overrides: dict[str, Override] = {}
        for user_id, doc in (overrides or {}).items():
            copied = _copy_override(doc)
            if copied is not None:
                self._overrides[user_id] = copied

    async def load(self, user_id: str) -> Optional[Override]:
        return _copy_override(self._overrides.get(user_id))

    async def save(self, user_id: str, override: Mapping[str, Any]) -> None:
        self._overrides[user_id] = _copy_override(override) or {}

    async def delete(self, user_id: str) -> None:
        """Forget a user's override (the user record itself was deleted)."""
        self._overrides.pop(user_id, None)


class SqlPermissionStore:
    """Overrides persisted on the user row, inside the caller's session.

    `save` commits, so a cache in front of this store is only invalidated
    once the new document is durable.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load(self, user_id: str) -> Optional[Override]:
        try:
            result = await self.session.execute(
                select(User.custom_permissions).where(User.id == user_id)
            )
            stored = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreUnavailableError(
                f"Could not load permissions for user {user_id}"
            ) from e
        return _copy_override(stored)

    async def save(self, user_id: str, override: Mapping[str, Any]) -> None:
        try:
            result = await self.session.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
            if user is None:
                raise ResourceNotFoundError("User", user_id)
            # Assign a new object so the JSON column is flagged dirty
            user.custom_permissions = _copy_override(override) or {}
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreUnavailableError(
                f"Could not save permissions for user {user_id}"
            ) from e


class CachedPermissionStore:
    """Read-through Redis cache; Redis errors fall back to the inner store.

    Cache keys: perm_override:{user_id}
    Absent overrides are cached too (as JSON null).
    """

    def __init__(
        self,
        inner: PermissionStore,
        redis_factory: Callable[[], Awaitable[redis.Redis]],
        ttl: int = 300,
    ):
        self.inner = inner
        self.redis_factory = redis_factory
        self.ttl = ttl

    @staticmethod
    def cache_key(user_id: str) -> str:
        return f"perm_override:{user_id}"

    async def load(self, user_id: str) -> Optional[Override]:
        key = self.cache_key(user_id)
        try:
            redis_client = await self.redis_factory()
            cached_value = await redis_client.get(key)
            cached = json.loads(cached_value) if cached_value is not None else None
        except redis.RedisError as e:
            logger.warning(f"Redis error (falling back to uncached): {e}")
            return await self.inner.load(user_id)
        except ValueError:
            logger.warning(f"Corrupt cache entry {key}, reading through")
            cached_value = None

        if cached_value is not None:
            logger.debug(f"Cache HIT: {key}")
            return _copy_override(cached)

        logger.debug(f"Cache MISS: {key}")
        override = await self.inner.load(user_id)
        try:
            await redis_client.setex(key, self.ttl, json.dumps(override))
        except redis.RedisError as e:
            logger.warning(f"Redis error while caching {key}: {e}")
        return override

    async def save(self, user_id: str, override: Mapping[str, Any]) -> None:
        await self.inner.save(user_id, override)
        key = self.cache_key(user_id)
        try:
            redis_client = await self.redis_factory()
            await redis_client.delete(key)
        except redis.RedisError as e:
            # Stale entry expires after ttl
            logger.warning(f"Failed to invalidate {key}: {e}")
