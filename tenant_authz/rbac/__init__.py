from .cache import RoleCache, build_role_map
from .errors import (
    AuthorizationError,
    ConfigurationError,
    Unauthorized,
    AccountInactive,
    InsufficientPermissions,
    StoreFailure,
)
from .grants import aggregate
from .guard import (
    Authorizer,
    AuthorizeOptions,
    Decision,
    PermissionGuard,
    RequestContext,
    get_authorizer,
    invalidate_role_cache,
    make_guard,
    require_permissions,
    set_authorizer,
)
from .models import CoarseGrant, RoleScope, RoleSnapshot, ScopedGrant, UserRecord
from .permissions import has_all, has_any, matches
from .roles import DEFAULT_ROLES

__all__ = [
    "RoleCache",
    "build_role_map",
    "AuthorizationError",
    "ConfigurationError",
    "Unauthorized",
    "AccountInactive",
    "InsufficientPermissions",
    "StoreFailure",
    "aggregate",
    "Authorizer",
    "AuthorizeOptions",
    "Decision",
    "PermissionGuard",
    "RequestContext",
    "get_authorizer",
    "invalidate_role_cache",
    "make_guard",
    "require_permissions",
    "set_authorizer",
    "CoarseGrant",
    "RoleScope",
    "RoleSnapshot",
    "ScopedGrant",
    "UserRecord",
    "has_all",
    "has_any",
    "matches",
    "DEFAULT_ROLES",
]
