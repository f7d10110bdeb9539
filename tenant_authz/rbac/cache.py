"""
Per-tenant role cache.

Holds a time-bounded snapshot ``role_key -> RoleSnapshot`` for every tenant
that has been checked recently. There is no lock: two requests missing at
the same time both reload and the later write wins, which is harmless
because both computed the same snapshot. Role mutations must call
``invalidate`` after their write commits.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from tenant_authz.utils import Logger

from .models import RoleSnapshot

logger = Logger("rbac.cache")

NO_TENANT_KEY = "_no_slug_"
DEFAULT_TTL_SECONDS = 60.0


class RoleStore(Protocol):
    async def list_roles(self, conn: Any, tenant_slug: str) -> list[dict]:
        ...


@dataclass(frozen=True)
class CacheEntry:
    roles: dict[str, RoleSnapshot]
    loaded_at: float


def _cache_key(tenant_slug: str | None) -> str:
    return tenant_slug or NO_TENANT_KEY


def build_role_map(role_docs: list[dict]) -> dict[str, RoleSnapshot]:
    """Index role documents by key; documents without a key are dropped."""
    roles: dict[str, RoleSnapshot] = {}
    for doc in role_docs:
        key = doc.get("key")
        if not key:
            continue
        roles[key] = RoleSnapshot.from_doc(doc)
    return roles


class RoleCache:
    def __init__(
        self,
        store: RoleStore,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def _fresh(self, entry: CacheEntry | None) -> bool:
        return entry is not None and (self.clock() - entry.loaded_at) < self.ttl

    async def get(self, conn: Any, tenant_slug: str | None) -> dict[str, RoleSnapshot]:
        """Return the tenant's role map, reloading it from the store when stale."""
        key = _cache_key(tenant_slug)
        entry = self._entries.get(key)
        if self._fresh(entry):
            return entry.roles

        # Store errors propagate; nothing is cached on failure.
        role_docs = await self.store.list_roles(conn, tenant_slug)
        roles = build_role_map(role_docs)
        self._entries[key] = CacheEntry(roles=roles, loaded_at=self.clock())
        logger.debug(f"Loaded {len(roles)} roles for tenant '{key}'")
        return roles

    def invalidate(self, tenant_slug: str | None) -> None:
        key = _cache_key(tenant_slug)
        if self._entries.pop(key, None) is not None:
            logger.debug(f"Invalidated role cache for tenant '{key}'")

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, tenant_slug: str | None) -> bool:
        return self._fresh(self._entries.get(_cache_key(tenant_slug)))

    def __len__(self) -> int:
        return len(self._entries)
