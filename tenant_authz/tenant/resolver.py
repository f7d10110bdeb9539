"""
Tenant collection resolver.

Convention:
  - Tenant-scoped collections:  {tenant_slug}_{collection_name}
    e.g.  acme_users, acme_tenant_roles
  - Global collections:         {collection_name}
    e.g.  organizations  (shared across all tenants)
"""

import re
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection


_SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9\-]*$")


def normalize_slug(raw: str | None) -> str | None:
    """Lower-case and strip a tenant identifier; empty input gives None."""
    if raw is None:
        return None
    slug = str(raw).strip().lower()
    return slug or None


def is_valid_slug(slug: str) -> bool:
    return bool(_SLUG_PATTERN.match(slug))


def _validate_slug(tenant_slug: str) -> str:
    """Ensure the slug is safe for use as a collection name prefix."""
    slug = normalize_slug(tenant_slug) or ""
    if not is_valid_slug(slug):
        raise ValueError(
            f"Invalid tenant slug '{tenant_slug}'. "
            "Must be lowercase alphanumeric with optional hyphens."
        )
    # Hyphens become underscores in collection names.
    return slug.replace("-", "_")


def get_tenant_collection(
    db: AsyncIOMotorDatabase,
    tenant_slug: str,
    collection_name: str,
) -> AsyncIOMotorCollection:
    """
    Return a tenant-scoped collection.

    Example:
        get_tenant_collection(db, "acme", "users")  →  db["acme_users"]
    """
    safe_slug = _validate_slug(tenant_slug)
    return db[f"{safe_slug}_{collection_name}"]


def get_global_collection(
    db: AsyncIOMotorDatabase,
    collection_name: str,
) -> AsyncIOMotorCollection:
    """
    Return a global (non-tenant) collection.

    Example:
        get_global_collection(db, "tenants")  →  db["tenants"]
    """
    return db[collection_name]
