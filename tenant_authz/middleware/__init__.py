from .tenant_context import TenantContextMiddleware, resolve_tenant_slug

__all__ = ["TenantContextMiddleware", "resolve_tenant_slug"]
