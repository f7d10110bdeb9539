"""Tests for the MongoDB-backed role and user stores."""

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import ServerSelectionTimeoutError

from tenant_authz.rbac import StoreFailure
from tenant_authz.roles import MongoRoleStore
from tenant_authz.users import MongoUserStore


@pytest.fixture
def db():
    return AsyncMongoMockClient()["tenant_authz_test"]


class _BrokenCursor:
    async def to_list(self, length=None):
        raise ServerSelectionTimeoutError("no servers")


class _BrokenCollection:
    def find(self, *args, **kwargs):
        return _BrokenCursor()

    async def find_one(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")


class _BrokenDb:
    def __getitem__(self, name):
        return _BrokenCollection()


class TestMongoRoleStore:
    async def test_lists_tenant_roles(self, db):
        await db["acme_tenant_roles"].insert_many(
            [
                {"key": "cashier", "name": "Cashier", "permissions": ["orders.read"], "scope": "branch"},
                {"key": "viewer", "name": "Viewer", "permissions": ["menu.read"]},
            ]
        )
        await db["globex_tenant_roles"].insert_one({"key": "other", "permissions": []})

        roles = await MongoRoleStore().list_roles(db, "acme")
        assert sorted(r["key"] for r in roles) == ["cashier", "viewer"]
        assert all("name" not in r for r in roles)

    async def test_hyphenated_slug(self, db):
        await db["big_co_tenant_roles"].insert_one({"key": "hr", "permissions": ["hr.*"]})
        roles = await MongoRoleStore().list_roles(db, "big-co")
        assert [r["key"] for r in roles] == ["hr"]

    async def test_driver_error_becomes_store_failure(self):
        with pytest.raises(StoreFailure) as exc:
            await MongoRoleStore().list_roles(_BrokenDb(), "acme")
        assert isinstance(exc.value.__cause__, ServerSelectionTimeoutError)


class TestMongoUserStore:
    async def test_finds_user(self, db):
        oid = ObjectId()
        await db["acme_users"].insert_one(
            {"_id": oid, "status": "active", "roles": ["cashier"], "password": "x"}
        )
        user = await MongoUserStore().find_user_by_id(db, "acme", str(oid))
        assert user["roles"] == ["cashier"]
        assert "password" not in user

    async def test_soft_deleted_user_is_not_found(self, db):
        oid = ObjectId()
        await db["acme_users"].insert_one({"_id": oid, "status": "active", "is_deleted": True})
        assert await MongoUserStore().find_user_by_id(db, "acme", str(oid)) is None

    async def test_malformed_id_is_not_found(self, db):
        assert await MongoUserStore().find_user_by_id(db, "acme", "not-an-id") is None

    async def test_driver_error_becomes_store_failure(self):
        with pytest.raises(StoreFailure):
            await MongoUserStore().find_user_by_id(_BrokenDb(), "acme", str(ObjectId()))
