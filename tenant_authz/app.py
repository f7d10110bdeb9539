"""
Tenant authorization service: main application.

Assembles config, tenant context middleware, the authorization error
boundary and the role management routes.
"""

import time
import traceback
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorDatabase
from starlette.middleware.base import BaseHTTPMiddleware

from tenant_authz.config import settings, db_manager, get_database
from tenant_authz.middleware import TenantContextMiddleware
from tenant_authz.rbac import Authorizer, AuthorizationError, StoreFailure, set_authorizer
from tenant_authz.roles import roles_router
from tenant_authz.utils import Logger, error_response

logger = Logger("request")


# ── Request Logging Middleware ───────────────────────────────────
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with the tenant and user it ran for.

    Runs inside the tenant context middleware, so ``request.state`` already
    carries the resolved tenant slug (absent on routes that skip it).
    """

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        tenant = getattr(request.state, "tenant_slug", None) or "-"
        user = getattr(request.state, "user_id", None) or "-"
        line = f"{request.method} {request.url.path} [tenant={tenant} user={user}]"

        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            logger.error(f"{line} | 500 | {elapsed:.1f}ms\n{traceback.format_exc()}")
            raise

        elapsed = (time.perf_counter() - start) * 1000
        status_code = response.status_code
        message = f"{line} | {status_code} | {elapsed:.1f}ms"
        if status_code >= 500:
            logger.error(message)
        elif status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)
        return response


# ── Lifespan ─────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    await db_manager.connect()
    yield
    db_manager.close()


# ── App factory ──────────────────────────────────────────────────
def create_app(
    db_provider: Optional[Callable[[], Awaitable[AsyncIOMotorDatabase]]] = None,
    authorizer: Optional[Authorizer] = None,
    user_header: Optional[str] = None,
    seed_defaults: Optional[bool] = None,
) -> FastAPI:
    """
    Build the application.

    ``db_provider`` replaces the shared MongoDB connection (the lifespan
    only connects when it is not given); ``authorizer`` replaces the
    default Mongo-backed authorizer used by route guards.
    """
    if authorizer is not None:
        set_authorizer(authorizer)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant role and permission authorization",
        docs_url="/api/docs",
        lifespan=lifespan if db_provider is None else None,
    )

    # ── CORS (must be first) ─────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allowed_methods,
        allow_headers=settings.cors_allowed_headers,
    )

    # ── Request logging (inside tenant context) ──────────────
    app.add_middleware(RequestLoggingMiddleware)

    # ── Tenant resolution ────────────────────────────────────
    app.add_middleware(
        TenantContextMiddleware,
        db_provider=db_provider or get_database,
        user_header=user_header or settings.trusted_user_header,
        seed_defaults=seed_defaults,
    )

    # ── Authorization error boundary ─────────────────────────
    @app.exception_handler(AuthorizationError)
    async def authorization_exception_handler(request: Request, exc: AuthorizationError):
        if isinstance(exc, StoreFailure):
            logger.error(
                f"Store failure on {request.method} {request.url.path}: {exc.__cause__!r}"
            )
        elif exc.status_code >= 500:
            logger.error(f"{exc.detail} on {request.method} {request.url.path}")

        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return error_response(exc.detail, exc.status_code, headers=headers)

    # ── Routes ───────────────────────────────────────────────
    v = settings.api_version  # "v1"

    app.include_router(
        roles_router,
        prefix=f"/api/{v}/roles",
        tags=["Roles"],
    )

    # ── Health check ─────────────────────────────────────────
    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "database": db_manager.is_connected,
        }

    return app


# ── Create the app instance ──────────────────────────────────────
app = create_app()
