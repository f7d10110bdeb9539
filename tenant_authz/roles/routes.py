from fastapi import APIRouter, Depends, Request, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional

from tenant_authz.rbac import ConfigurationError, require_permissions
from tenant_authz.utils import success_response
from .schemas import CreateRoleRequest, UpdateRoleRequest, RoleAssignmentRequest
from .service import RoleService

roles_router = APIRouter()


def _tenant(request: Request) -> tuple[AsyncIOMotorDatabase, str]:
    """Database handle and tenant slug set by the TenantContextMiddleware."""
    db = getattr(request.state, "tenant_db", None)
    slug = getattr(request.state, "tenant_slug", None)
    if db is None or not slug:
        raise ConfigurationError()
    return db, slug


@roles_router.post("/")
@require_permissions("roles.create")
async def create_role(request: Request, body: CreateRoleRequest):
    svc = RoleService(*_tenant(request))
    role = await svc.create_role(body.model_dump(mode="json"))
    return success_response(data=role, message="Role created", code=201)


@roles_router.get("/")
@require_permissions("roles.read")
async def list_roles(
    request: Request,
    q: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    svc = RoleService(*_tenant(request))
    roles, total = await svc.list_roles(query=q, limit=limit, offset=offset)
    return success_response(
        data={"roles": roles, "total": total, "limit": limit, "offset": offset}
    )


@roles_router.post("/assign")
@require_permissions("roles.assign")
async def assign_role(request: Request, body: RoleAssignmentRequest):
    svc = RoleService(*_tenant(request))
    result = await svc.assign_role(body.user_id, body.role_key, body.branch_id)
    return success_response(data=result, message="Role assigned")


@roles_router.post("/unassign")
@require_permissions("roles.assign")
async def unassign_role(request: Request, body: RoleAssignmentRequest):
    svc = RoleService(*_tenant(request))
    result = await svc.unassign_role(body.user_id, body.role_key, body.branch_id)
    return success_response(data=result, message="Role unassigned")


@roles_router.get("/{role_id}")
@require_permissions("roles.read")
async def get_role(request: Request, role_id: str):
    svc = RoleService(*_tenant(request))
    role = await svc.get_role(role_id)
    return success_response(data=role)


@roles_router.put("/{role_id}")
@require_permissions("roles.update")
async def update_role(request: Request, role_id: str, body: UpdateRoleRequest):
    svc = RoleService(*_tenant(request))
    role = await svc.update_role(role_id, body.model_dump(mode="json", exclude_unset=True))
    return success_response(data=role, message="Role updated")


@roles_router.delete("/{role_id}")
@require_permissions("roles.delete")
async def delete_role(request: Request, role_id: str):
    svc = RoleService(*_tenant(request))
    result = await svc.delete_role(role_id)
    return success_response(data=result, message="Role deleted")
