"""Role store: reads the tenant-scoped ``{slug}_tenant_roles`` collection."""

from typing import Any

from pymongo.errors import PyMongoError

from tenant_authz.rbac.errors import StoreFailure
from tenant_authz.tenant import get_tenant_collection
from tenant_authz.utils import Logger

logger = Logger("roles.store")

ROLES_COLLECTION = "tenant_roles"
_ROLE_PROJECTION = {"key": 1, "permissions": 1, "scope": 1}


class MongoRoleStore:
    async def list_roles(self, conn: Any, tenant_slug: str) -> list[dict]:
        roles = get_tenant_collection(conn, tenant_slug, ROLES_COLLECTION)
        try:
            return await roles.find({}, _ROLE_PROJECTION).to_list(length=None)
        except PyMongoError as exc:
            logger.error(f"Role listing failed for tenant '{tenant_slug}': {exc}")
            raise StoreFailure() from exc
