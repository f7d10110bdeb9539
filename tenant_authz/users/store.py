"""User store: loads user documents from ``{slug}_users``."""

from typing import Any, Optional

from pymongo.errors import PyMongoError

from tenant_authz.rbac.errors import StoreFailure
from tenant_authz.tenant import get_tenant_collection
from tenant_authz.utils import Logger, parse_object_id

logger = Logger("users.store")

USERS_COLLECTION = "users"
_USER_PROJECTION = {"status": 1, "roles": 1, "role_grants": 1, "roleGrants": 1}


class MongoUserStore:
    async def find_user_by_id(
        self, conn: Any, tenant_slug: str, user_id: str
    ) -> Optional[dict]:
        """Return the user document, or None when the id is unknown or malformed."""
        try:
            oid = parse_object_id(user_id)
        except ValueError:
            return None

        users = get_tenant_collection(conn, tenant_slug, USERS_COLLECTION)
        try:
            return await users.find_one(
                {"_id": oid, "is_deleted": {"$ne": True}}, _USER_PROJECTION
            )
        except PyMongoError as exc:
            logger.error(f"User lookup failed for tenant '{tenant_slug}': {exc}")
            raise StoreFailure() from exc
