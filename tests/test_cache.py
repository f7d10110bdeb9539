"""Tests for the per-tenant role cache."""

import asyncio

import pytest

from tenant_authz.rbac import RoleCache, RoleScope, StoreFailure, build_role_map

CASHIER = {"key": "cashier", "permissions": ["orders.read"], "scope": "tenant"}


@pytest.fixture
def conn():
    return object()


class TestBuildRoleMap:
    def test_indexes_by_key_and_defaults(self):
        roles = build_role_map([{"key": "viewer"}, {"permissions": ["x"]}, CASHIER])
        assert set(roles) == {"viewer", "cashier"}
        assert roles["viewer"].permissions == frozenset()
        assert roles["viewer"].scope is RoleScope.TENANT


class TestRoleCacheFreshness:
    async def test_first_get_loads(self, role_cache, role_store, conn):
        role_store.set_roles("acme", [CASHIER])
        roles = await role_cache.get(conn, "acme")
        assert roles["cashier"].permissions == {"orders.read"}
        assert role_store.calls == 1

    async def test_no_reload_within_ttl(self, role_cache, role_store, clock, conn):
        role_store.set_roles("acme", [CASHIER])
        await role_cache.get(conn, "acme")
        clock.advance(30)
        await role_cache.get(conn, "acme")
        clock.advance(29.9)
        await role_cache.get(conn, "acme")
        assert role_store.calls == 1

    async def test_reload_after_ttl(self, role_cache, role_store, clock, conn):
        role_store.set_roles("acme", [CASHIER])
        await role_cache.get(conn, "acme")
        role_store.set_roles("acme", [{**CASHIER, "permissions": ["orders.*"]}])
        clock.advance(60)
        roles = await role_cache.get(conn, "acme")
        assert role_store.calls == 2
        assert roles["cashier"].permissions == {"orders.*"}

    async def test_tenants_are_isolated(self, role_cache, role_store, conn):
        role_store.set_roles("acme", [CASHIER])
        role_store.set_roles("globex", [{"key": "viewer", "permissions": ["menu.read"]}])
        assert set(await role_cache.get(conn, "acme")) == {"cashier"}
        assert set(await role_cache.get(conn, "globex")) == {"viewer"}
        assert role_store.calls == 2

    async def test_missing_tenant_uses_sentinel_key(self, role_cache, role_store, conn):
        await role_cache.get(conn, None)
        await role_cache.get(conn, "")
        assert role_store.calls == 1
        assert None in role_cache


class TestRoleCacheInvalidation:
    async def test_invalidate_forces_reload(self, role_cache, role_store, conn):
        role_store.set_roles("acme", [CASHIER])
        await role_cache.get(conn, "acme")
        role_store.set_roles("acme", [])
        role_cache.invalidate("acme")
        assert "acme" not in role_cache

        roles = await role_cache.get(conn, "acme")
        assert roles == {}
        assert role_store.calls == 2

    async def test_invalidate_unknown_tenant_is_noop(self, role_cache):
        role_cache.invalidate("nobody")
        assert len(role_cache) == 0

    async def test_clear(self, role_cache, role_store, conn):
        await role_cache.get(conn, "acme")
        await role_cache.get(conn, "globex")
        role_cache.clear()
        assert len(role_cache) == 0

    async def test_concurrent_reload_after_invalidate(self, role_cache, role_store, conn):
        role_store.set_roles("acme", [CASHIER])
        await role_cache.get(conn, "acme")

        role_store.set_roles("acme", [{**CASHIER, "permissions": ["orders.*"]}])
        role_store.delay_ticks = 3
        role_cache.invalidate("acme")
        calls_before = role_store.calls

        n = 10
        results = await asyncio.gather(*(role_cache.get(conn, "acme") for _ in range(n)))

        reloads = role_store.calls - calls_before
        assert 1 <= reloads <= n
        assert all(r["cashier"].permissions == {"orders.*"} for r in results)

        # The repopulated entry serves later readers.
        await role_cache.get(conn, "acme")
        assert role_store.calls - calls_before == reloads


class TestRoleCacheFailures:
    async def test_store_error_propagates_and_is_not_cached(
        self, role_cache, role_store, conn
    ):
        role_store.error = StoreFailure()
        with pytest.raises(StoreFailure):
            await role_cache.get(conn, "acme")
        assert "acme" not in role_cache

        role_store.error = None
        role_store.set_roles("acme", [CASHIER])
        assert "cashier" in await role_cache.get(conn, "acme")

    async def test_expired_entry_not_served_when_reload_fails(
        self, role_cache, role_store, clock, conn
    ):
        role_store.set_roles("acme", [CASHIER])
        await role_cache.get(conn, "acme")
        clock.advance(61)
        role_store.error = RuntimeError("connection reset")
        with pytest.raises(RuntimeError):
            await role_cache.get(conn, "acme")

    async def test_cancelled_load_leaves_no_entry(self, role_cache, role_store, conn):
        role_store.delay_ticks = 5
        task = asyncio.create_task(role_cache.get(conn, "acme"))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert "acme" not in role_cache
