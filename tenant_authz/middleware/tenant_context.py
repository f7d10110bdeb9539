"""
Tenant context middleware.

Runs on every request (except DISABLED_ROUTES):
  1. Resolve the tenant slug from the tenant header or the first hostname label
  2. Check the tenant exists in the global `organizations` collection
  3. Create the role key index and seed default roles (once per process)
  4. Set request.state.tenant_slug, request.state.tenant_db, request.state.tenant
  5. Optionally copy a gateway-supplied user id onto request.state.user_id

Token verification is not done here; the user header must only be trusted
when an upstream gateway has already authenticated the caller.
"""

from typing import Awaitable, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from tenant_authz.config import get_database, settings
from tenant_authz.roles import ensure_defaults_seeded
from tenant_authz.tenant import get_global_collection, is_valid_slug, normalize_slug
from tenant_authz.utils import Logger, error_response

logger = Logger("middleware.tenant")

# Routes that skip tenant resolution
DISABLED_ROUTES = [
    "/health",
    "/openapi.json",
    "/api/docs",
    "/redoc",
]

ORGANIZATIONS_COLLECTION = "organizations"


def resolve_tenant_slug(request: Request, header_name: str) -> Optional[str]:
    slug = normalize_slug(request.headers.get(header_name))
    if slug:
        return slug
    hostname = request.url.hostname or ""
    if "." in hostname:
        return normalize_slug(hostname.split(".")[0])
    return None


class TenantContextMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        db_provider: Callable[[], Awaitable[AsyncIOMotorDatabase]] = get_database,
        user_header: Optional[str] = None,
        seed_defaults: Optional[bool] = None,
    ):
        super().__init__(app)
        self.db_provider = db_provider
        self.user_header = user_header
        self.seed_defaults = (
            settings.seed_default_roles if seed_defaults is None else seed_defaults
        )

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # ── Skip preflight and disabled routes ───────────────────
        if request.method == "OPTIONS" or any(
            path.endswith(route) for route in DISABLED_ROUTES
        ):
            return await call_next(request)

        slug = resolve_tenant_slug(request, settings.tenant_header)
        if not slug or not is_valid_slug(slug):
            logger.warning(f"Missing or invalid tenant identifier on {path}")
            return error_response(
                "Missing tenant identifier (x-tenant-id header or subdomain)", 400
            )

        try:
            db = await self.db_provider()
            tenant = await get_global_collection(db, ORGANIZATIONS_COLLECTION).find_one(
                {"slug": slug}
            )
            if not tenant:
                logger.warning(f"Tenant not found: {slug}")
                return error_response(f'Tenant "{slug}" not found', 404)
            if tenant.get("is_active") is False:
                return error_response(f'Tenant "{slug}" is not active', 403)

            await ensure_defaults_seeded(db, slug, seed=self.seed_defaults)
        except PyMongoError as exc:
            logger.error(f"Tenant context failed for '{slug}': {exc}")
            return error_response("Tenant DB connection failed", 500)

        request.state.tenant_slug = slug
        request.state.tenant_db = db
        request.state.tenant = tenant

        if self.user_header:
            user_id = request.headers.get(self.user_header)
            if user_id and not getattr(request.state, "user_id", None):
                request.state.user_id = user_id.strip()

        return await call_next(request)
