"""
Role service: tenant role CRUD, default seeding and role assignment.

Collections (tenant-scoped):
    - {slug}_tenant_roles : role definitions
    - {slug}_users        : users carrying `roles` and `role_grants`

Every write to a role definition invalidates the tenant's role cache once
the write has completed, so the next authorization check reloads.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from fastapi import HTTPException, status
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from tenant_authz.rbac import DEFAULT_ROLES, RoleScope, invalidate_role_cache
from tenant_authz.tenant import get_tenant_collection
from tenant_authz.users import USERS_COLLECTION
from tenant_authz.utils import Logger, parse_object_id, serialize_mongo_doc

from .store import ROLES_COLLECTION

logger = Logger("roles.service")

# Tenants whose default roles were seeded by this process
_SEEDED_TENANTS: set[str] = set()


async def ensure_defaults_seeded(
    db: AsyncIOMotorDatabase, tenant_slug: str, seed: bool = True
) -> None:
    """Create the role key index and seed default roles, once per tenant per process."""
    if tenant_slug in _SEEDED_TENANTS:
        return
    service = RoleService(db, tenant_slug)
    await service.ensure_indexes()
    if seed:
        await service.seed_default_roles()
    _SEEDED_TENANTS.add(tenant_slug)


def _normalize_key(key: Optional[str]) -> str:
    return str(key or "").strip().lower()


def _invalid_id(kind: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {kind} ID"
    )


def _object_id(value: str, kind: str):
    try:
        return parse_object_id(value)
    except ValueError as exc:
        raise _invalid_id(kind) from exc


def _duplicate_key() -> HTTPException:
    return HTTPException(status_code=409, detail="Role key already exists")


class RoleService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        tenant_slug: str,
        on_change: Callable[[str], None] = invalidate_role_cache,
    ):
        self.db = db
        self.tenant_slug = tenant_slug
        self.on_change = on_change
        self.roles = get_tenant_collection(db, tenant_slug, ROLES_COLLECTION)
        self.users = get_tenant_collection(db, tenant_slug, USERS_COLLECTION)

    def _changed(self) -> None:
        self.on_change(self.tenant_slug)

    # ── Seeding ──────────────────────────────────────────────────

    async def ensure_indexes(self) -> None:
        """Role keys are unique per tenant."""
        await self.roles.create_index("key", unique=True)

    async def seed_default_roles(self) -> int:
        """
        Insert missing default roles and repair existing ones.

        Existing roles keep their extra permissions; missing default
        permissions are added and scope / is_system are reset to the
        defaults. Returns the number of roles inserted or updated.
        """
        now = datetime.now(timezone.utc)
        touched = 0

        for key, definition in DEFAULT_ROLES.items():
            existing = await self.roles.find_one({"key": key})
            if not existing:
                try:
                    await self.roles.insert_one(
                        {"key": key, **definition, "created_at": now, "updated_at": now}
                    )
                except DuplicateKeyError:
                    # Seeded concurrently by another request
                    continue
                touched += 1
                continue

            current = list(existing.get("permissions") or [])
            missing = [p for p in definition["permissions"] if p not in current]
            patch: dict = {}
            if missing:
                patch["permissions"] = current + missing
            if existing.get("scope") != definition["scope"]:
                patch["scope"] = definition["scope"]
            if existing.get("is_system") != definition["is_system"]:
                patch["is_system"] = definition["is_system"]

            if patch:
                patch["updated_at"] = now
                await self.roles.update_one({"_id": existing["_id"]}, {"$set": patch})
                touched += 1

        if touched:
            logger.info(f"Seeded {touched} default roles for tenant '{self.tenant_slug}'")
            self._changed()
        return touched

    # ── Role CRUD ────────────────────────────────────────────────

    async def create_role(self, data: dict) -> dict:
        """Create a role. The key is lower-cased and must be unique in the tenant."""
        key = _normalize_key(data.get("key"))
        if not key:
            raise HTTPException(status_code=400, detail="key required")

        if await self.roles.find_one({"key": key}):
            raise _duplicate_key()

        now = datetime.now(timezone.utc)
        doc = {
            "name": data.get("name") or key,
            "key": key,
            "description": data.get("description") or "",
            "scope": data.get("scope") or RoleScope.TENANT.value,
            "permissions": list(data.get("permissions") or []),
            "is_system": False,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.roles.insert_one(doc)
        except DuplicateKeyError as exc:
            raise _duplicate_key() from exc
        doc["_id"] = result.inserted_id
        self._changed()
        return serialize_mongo_doc(doc)

    async def get_role(self, role_id: str) -> dict:
        doc = await self.roles.find_one({"_id": _object_id(role_id, "role")})
        if not doc:
            raise HTTPException(status_code=404, detail="Role not found")
        return serialize_mongo_doc(doc)

    async def list_roles(
        self,
        query: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        """List roles with optional search by name or key."""
        filters: dict = {}
        if query:
            filters["$or"] = [
                {"name": {"$regex": query, "$options": "i"}},
                {"key": {"$regex": query, "$options": "i"}},
            ]

        total = await self.roles.count_documents(filters)
        cursor = self.roles.find(filters).sort("created_at", -1).skip(offset).limit(limit)
        roles = [serialize_mongo_doc(r) async for r in cursor]
        return roles, total

    async def update_role(self, role_id: str, patch: dict) -> dict:
        """Update a role. System roles cannot be re-keyed."""
        oid = _object_id(role_id, "role")
        current = await self.roles.find_one({"_id": oid})
        if not current:
            raise HTTPException(status_code=404, detail="Role not found")

        clean = {k: v for k, v in patch.items() if v is not None}
        if "key" in clean:
            clean["key"] = _normalize_key(clean["key"])
            if not clean["key"]:
                raise HTTPException(status_code=400, detail="key required")
            if clean["key"] != current["key"]:
                if current.get("is_system"):
                    raise HTTPException(
                        status_code=400, detail="System role key cannot be changed"
                    )
                if await self.roles.find_one({"key": clean["key"]}):
                    raise _duplicate_key()
        if "scope" in clean:
            clean["scope"] = RoleScope(clean["scope"]).value
        clean.pop("is_system", None)
        clean["updated_at"] = datetime.now(timezone.utc)

        try:
            result = await self.roles.find_one_and_update(
                {"_id": oid},
                {"$set": clean},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise _duplicate_key() from exc
        if not result:
            raise HTTPException(status_code=404, detail="Role not found")
        self._changed()
        return serialize_mongo_doc(result)

    async def delete_role(self, role_id: str) -> dict:
        """Delete a role. System roles are protected."""
        doc = await self.roles.find_one({"_id": _object_id(role_id, "role")})
        if not doc:
            raise HTTPException(status_code=404, detail="Role not found")
        if doc.get("is_system"):
            raise HTTPException(status_code=400, detail="Cannot delete a system role")

        await self.roles.delete_one({"_id": doc["_id"]})
        self._changed()
        return {"message": "Role deleted successfully"}

    # ── Assignment ───────────────────────────────────────────────

    async def _get_user(self, user_id: str) -> dict:
        user = await self.users.find_one(
            {"_id": _object_id(user_id, "user"), "is_deleted": {"$ne": True}}
        )
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    async def assign_role(
        self, user_id: str, role_key: str, branch_id: Optional[str] = None
    ) -> dict:
        """
        Grant a role to a user.

        Tenant roles are added as a coarse role key and their grant never
        carries a branch. Branch roles need a branch and are only recorded
        as a scoped grant, since coarse keys apply tenant-wide.
        """
        role_key = _normalize_key(role_key)
        role = await self.roles.find_one({"key": role_key})
        if not role:
            raise HTTPException(status_code=404, detail="Role not found")

        scope = RoleScope.parse(role.get("scope"))
        if scope is None:
            raise HTTPException(status_code=400, detail="Role has an unrecognised scope")
        if scope is RoleScope.BRANCH and not branch_id:
            raise HTTPException(
                status_code=400, detail="branch_id required for branch-scoped roles"
            )

        user = await self._get_user(user_id)
        branch_id = str(branch_id) if branch_id and scope is RoleScope.BRANCH else None
        update: dict = {"$set": {"updated_at": datetime.now(timezone.utc)}}

        if scope is RoleScope.TENANT:
            update["$addToSet"] = {"roles": role_key}

        grants = user.get("role_grants") or []
        already = any(
            g.get("role_key") == role_key and (g.get("branch_id") or None) == branch_id
            for g in grants
        )
        if not already:
            update["$push"] = {
                "role_grants": {
                    "role_key": role_key,
                    "scope": scope.value,
                    "branch_id": branch_id,
                }
            }

        await self.users.update_one({"_id": user["_id"]}, update)
        return {"user_id": str(user["_id"]), "role_key": role_key, "branch_id": branch_id}

    async def unassign_role(
        self, user_id: str, role_key: str, branch_id: Optional[str] = None
    ) -> dict:
        """
        Remove the coarse role key and the matching scoped grants.

        Grants of a tenant-scoped role are removed whatever branch they
        were recorded with; branch grants only for ``branch_id``.
        """
        role_key = _normalize_key(role_key)
        user = await self._get_user(user_id)
        branch_id = str(branch_id) if branch_id else None

        role = await self.roles.find_one({"key": role_key})
        tenant_wide = (
            role is not None and RoleScope.parse(role.get("scope")) is RoleScope.TENANT
        )

        def _matches(grant: dict) -> bool:
            if grant.get("role_key") != role_key:
                return False
            if tenant_wide or grant.get("scope") == RoleScope.TENANT.value:
                return True
            return (grant.get("branch_id") or None) == branch_id

        remaining = [g for g in user.get("role_grants") or [] if not _matches(g)]

        await self.users.update_one(
            {"_id": user["_id"]},
            {
                "$pull": {"roles": role_key},
                "$set": {
                    "role_grants": remaining,
                    "updated_at": datetime.now(timezone.utc),
                },
            },
        )
        return {"user_id": str(user["_id"]), "role_key": role_key, "branch_id": branch_id}
