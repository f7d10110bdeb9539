from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
import re

from tenant_authz.rbac import RoleScope

_KEY_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")
_PERMISSION_PATTERN = re.compile(r"^(\*|[a-z0-9_]+(\.[a-z0-9_]+)*(\.\*)?)$")


def clean_role_key(v: str) -> str:
    key = v.strip().lower()
    if not _KEY_PATTERN.match(key):
        raise ValueError("Role key must be a lowercase token, e.g. 'cashier'")
    return key


def clean_permissions(perms: List[str]) -> List[str]:
    """Strip, validate and de-duplicate permission strings, keeping order."""
    cleaned: List[str] = []
    for perm in perms:
        perm = perm.strip()
        if not _PERMISSION_PATTERN.match(perm):
            raise ValueError(f"Invalid permission string: {perm!r}")
        if perm not in cleaned:
            cleaned.append(perm)
    return cleaned


class CreateRoleRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    key: str = Field(..., min_length=1, max_length=64)
    description: Optional[str] = ""
    scope: RoleScope = RoleScope.TENANT
    permissions: List[str] = []

    @field_validator("key")
    @classmethod
    def validate_key(cls, v):
        return clean_role_key(v)

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v):
        return clean_permissions(v)


class UpdateRoleRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    key: Optional[str] = Field(None, min_length=1, max_length=64)
    description: Optional[str] = None
    scope: Optional[RoleScope] = None
    permissions: Optional[List[str]] = None

    @field_validator("key")
    @classmethod
    def validate_key(cls, v):
        return clean_role_key(v) if v is not None else v

    @field_validator("permissions")
    @classmethod
    def validate_permissions(cls, v):
        return clean_permissions(v) if v is not None else v


class RoleAssignmentRequest(BaseModel):
    user_id: str
    role_key: str = Field(..., min_length=1, max_length=64)
    branch_id: Optional[str] = None
