"""
Authorization decisions and declarative permission guards.

Usage in route handlers:

    @router.post("/orders")
    @require_permissions("orders.create")
    async def create_order(request: Request):
        ...

    @router.post("/branches/{branch_id}/till/close")
    @require_permissions("till.close", branch_param="branch_id")
    async def close_till(request: Request, branch_id: str):
        ...

or as a dependency:

    @router.get("/reports", dependencies=[Depends(PermissionGuard("reports.view"))])

Denials raise ``AuthorizationError`` subclasses which the application maps
to status codes in one place.
"""

from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Protocol

from starlette.requests import Request

from tenant_authz.config import settings
from tenant_authz.utils import Logger

from .cache import RoleCache
from .errors import (
    AccountInactive,
    AuthorizationError,
    ConfigurationError,
    InsufficientPermissions,
    StoreFailure,
    Unauthorized,
)
from .grants import aggregate
from .models import UserRecord
from .permissions import has_all, has_any

logger = Logger("rbac.guard")


class UserStore(Protocol):
    async def find_user_by_id(
        self, conn: Any, tenant_slug: str, user_id: str
    ) -> Optional[dict]:
        ...


@dataclass(frozen=True)
class AuthorizeOptions:
    require_any: bool = False
    branch_param: Optional[str] = None
    branch_header: Optional[str] = None
    allow_owner_bypass: bool = True


@dataclass
class RequestContext:
    """What the authorizer needs to know about the inbound request."""

    db: Any = None
    tenant_slug: Optional[str] = None
    user_id: Optional[str] = None
    path_params: Mapping[str, Any] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def input_value(self, name: str) -> Any:
        """First non-empty value for ``name`` in path params, body, then query."""
        for source in (self.path_params, self.body, self.query):
            value = source.get(name) if isinstance(source, Mapping) else None
            if value:
                return value
        return None

    @classmethod
    async def from_request(cls, request: Request) -> "RequestContext":
        state = request.state
        return cls(
            db=getattr(state, "tenant_db", None),
            tenant_slug=getattr(state, "tenant_slug", None),
            user_id=_user_id_from_state(state),
            path_params=dict(request.path_params),
            body=await _json_body(request),
            query=dict(request.query_params),
            headers=dict(request.headers),
        )


def _user_id_from_state(state) -> Optional[str]:
    user_id = getattr(state, "user_id", None)
    if user_id:
        return str(user_id)

    user = getattr(state, "user", None)
    if isinstance(user, Mapping):
        user_id = user.get("uid") or user.get("sub")
    elif user is not None:
        user_id = getattr(user, "uid", None) or getattr(user, "id", None)
    return str(user_id) if user_id else None


async def _json_body(request: Request) -> dict:
    if "application/json" not in request.headers.get("content-type", ""):
        return {}
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str
    granted: frozenset[str] = frozenset()
    branch_id: Optional[str] = None


class Authorizer:
    def __init__(
        self,
        role_cache: RoleCache,
        user_store: UserStore,
        owner_role_key: str | None = None,
        default_branch_header: str | None = None,
    ):
        self.role_cache = role_cache
        self.user_store = user_store
        self.owner_role_key = owner_role_key or settings.owner_role_key
        self.default_branch_header = default_branch_header or settings.branch_header

    def invalidate(self, tenant_slug: str | None) -> None:
        self.role_cache.invalidate(tenant_slug)

    async def load_user(self, ctx: RequestContext) -> UserRecord:
        if not ctx.user_id:
            raise Unauthorized()
        doc = await self.user_store.find_user_by_id(ctx.db, ctx.tenant_slug, ctx.user_id)
        if not doc:
            raise Unauthorized()
        user = UserRecord.from_doc(doc)
        if not user.is_active:
            raise AccountInactive()
        return user

    def resolve_branch(
        self, ctx: RequestContext, options: AuthorizeOptions
    ) -> Optional[str]:
        branch_id = None
        if options.branch_param:
            branch_id = ctx.input_value(options.branch_param)
        if not branch_id:
            branch_id = ctx.header(options.branch_header or self.default_branch_header)
        return str(branch_id) if branch_id else None

    async def authorize(
        self,
        required: str | Iterable[str],
        options: AuthorizeOptions | None = None,
        ctx: RequestContext | None = None,
    ) -> Decision:
        """
        Decide whether the request's user holds ``required``.

        Returns an allowing ``Decision`` or raises:
          - ConfigurationError       tenant db / tenant slug missing
          - Unauthorized             no user id, or user not found
          - AccountInactive          user status is not "active"
          - InsufficientPermissions  evaluation failed
        Store errors propagate as raised by the store.
        """
        options = options or AuthorizeOptions()
        ctx = ctx or RequestContext()
        perms = [required] if isinstance(required, str) else list(required)

        if ctx.db is None or not ctx.tenant_slug:
            raise ConfigurationError()

        user = await self.load_user(ctx)

        if options.allow_owner_bypass and self.owner_role_key in user.role_keys:
            return Decision(allowed=True, reason="owner_bypass")

        branch_id = self.resolve_branch(ctx, options)
        roles = await self.role_cache.get(ctx.db, ctx.tenant_slug)
        granted = aggregate(user, roles, branch_id)

        check = has_any if options.require_any else has_all
        if not check(perms, granted):
            logger.info(
                f"Denied user {user.user_id} in tenant '{ctx.tenant_slug}' "
                f"(branch={branch_id})"
            )
            logger.debug(f"Required {perms}, granted {sorted(granted)}")
            raise InsufficientPermissions()

        return Decision(
            allowed=True, reason="granted", granted=granted, branch_id=branch_id
        )

    async def check(
        self,
        required: str | Iterable[str],
        options: AuthorizeOptions | None = None,
        ctx: RequestContext | None = None,
    ) -> Decision:
        """Like ``authorize`` but returns denials instead of raising them."""
        try:
            return await self.authorize(required, options, ctx)
        except (ConfigurationError, StoreFailure):
            raise
        except AuthorizationError as exc:
            return Decision(allowed=False, reason=exc.detail)


# ── Default wiring ──────────────────────────────────────────────
_authorizer: Authorizer | None = None


def build_authorizer(ttl: float | None = None, clock=None) -> Authorizer:
    """Authorizer backed by the MongoDB role and user stores."""
    # Local imports keep the store modules out of the rbac import graph.
    from tenant_authz.roles.store import MongoRoleStore
    from tenant_authz.users.store import MongoUserStore

    cache_kwargs = {"ttl": settings.role_cache_ttl_seconds if ttl is None else ttl}
    if clock is not None:
        cache_kwargs["clock"] = clock
    return Authorizer(RoleCache(MongoRoleStore(), **cache_kwargs), MongoUserStore())


def get_authorizer() -> Authorizer:
    global _authorizer
    if _authorizer is None:
        _authorizer = build_authorizer()
    return _authorizer


def set_authorizer(authorizer: Authorizer | None) -> None:
    global _authorizer
    _authorizer = authorizer


def invalidate_role_cache(tenant_slug: str | None) -> None:
    """Drop the cached roles of a tenant; call after any role write commits."""
    get_authorizer().invalidate(tenant_slug)


# ── Guard factory ───────────────────────────────────────────────
Guard = Callable[[RequestContext], Awaitable[Decision]]


def make_guard(
    required: str | Iterable[str],
    *,
    require_any: bool = False,
    branch_param: Optional[str] = None,
    branch_header: Optional[str] = None,
    allow_owner_bypass: bool = True,
    authorizer: Authorizer | None = None,
) -> Guard:
    """Bind a permission requirement once; the returned guard checks a request."""
    perms = [required] if isinstance(required, str) else list(required)
    options = AuthorizeOptions(
        require_any=require_any,
        branch_param=branch_param,
        branch_header=branch_header,
        allow_owner_bypass=allow_owner_bypass,
    )

    async def guard(ctx: RequestContext) -> Decision:
        return await (authorizer or get_authorizer()).authorize(perms, options, ctx)

    guard.required = tuple(perms)
    guard.options = options
    return guard


def require_permissions(*permissions: str, **guard_options):
    """
    Decorator that authorizes the current request before the handler runs.

    Must be applied AFTER the route decorator, and the handler must accept
    a ``request: Request`` argument.
    """
    guard = make_guard(list(permissions), **guard_options)

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request: Request | None = kwargs.get("request")
            if request is None:
                for arg in args:
                    if isinstance(arg, Request):
                        request = arg
                        break

            if request is None:
                raise ConfigurationError("Request object not found in handler")

            ctx = await RequestContext.from_request(request)
            request.state.authorization = await guard(ctx)
            return await func(*args, **kwargs)

        return wrapper

    return decorator


class PermissionGuard:
    """
    FastAPI dependency form of ``require_permissions``.

    Usage:
        @router.get("/roles", dependencies=[Depends(PermissionGuard("roles.read"))])
    """

    def __init__(self, *permissions: str, **guard_options):
        self.guard = make_guard(list(permissions), **guard_options)

    async def __call__(self, request: Request) -> Decision:
        ctx = await RequestContext.from_request(request)
        decision = await self.guard(ctx)
        request.state.authorization = decision
        return decision
