"""Pytest configuration and shared fixtures."""

import asyncio
from copy import deepcopy

import pytest

from tenant_authz.rbac import Authorizer, RequestContext, RoleCache, set_authorizer
from tenant_authz.roles import service as role_service


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryRoleStore:
    """Role store keyed by tenant slug; counts every list_roles call."""

    def __init__(self, roles_by_tenant: dict | None = None):
        self.roles_by_tenant = roles_by_tenant or {}
        self.calls = 0
        self.delay_ticks = 0
        self.error: Exception | None = None

    def set_roles(self, tenant: str, roles: list[dict]) -> None:
        self.roles_by_tenant[tenant] = roles

    async def list_roles(self, conn, tenant_slug):
        self.calls += 1
        for _ in range(self.delay_ticks):
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return deepcopy(self.roles_by_tenant.get(tenant_slug, []))


class InMemoryUserStore:
    def __init__(self):
        self.users: dict[tuple[str, str], dict] = {}
        self.calls = 0
        self.error: Exception | None = None

    def add(self, tenant: str, user_id: str, **doc) -> None:
        doc.setdefault("status", "active")
        self.users[(tenant, user_id)] = {"_id": user_id, **doc}

    async def find_user_by_id(self, conn, tenant_slug, user_id):
        self.calls += 1
        if self.error is not None:
            raise self.error
        doc = self.users.get((tenant_slug, user_id))
        return deepcopy(doc) if doc else None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def role_store():
    return InMemoryRoleStore()


@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def role_cache(role_store, clock):
    return RoleCache(role_store, ttl=60, clock=clock)


@pytest.fixture
def authorizer(role_cache, user_store):
    return Authorizer(
        role_cache, user_store, owner_role_key="owner", default_branch_header="x-branch-id"
    )


@pytest.fixture
def make_ctx():
    """Build a RequestContext for tenant 'acme' with a dummy db handle."""

    def _make(user_id="u1", **overrides):
        fields = {"db": object(), "tenant_slug": "acme", "user_id": user_id}
        fields.update(overrides)
        return RequestContext(**fields)

    return _make


@pytest.fixture(autouse=True)
def _reset_globals():
    role_service._SEEDED_TENANTS.clear()
    yield
    set_authorizer(None)
    role_service._SEEDED_TENANTS.clear()
