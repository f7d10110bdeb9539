"""
Value types shared by the cache, the grant aggregator and the authorizer.

User documents are accepted in either snake_case (``role_grants``,
``role_key``, ``branch_id``) or the older camelCase shape
(``roleGrants``, ``roleKey``, ``branchId``).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class RoleScope(str, Enum):
    TENANT = "tenant"
    BRANCH = "branch"

    @classmethod
    def parse(cls, value: Any) -> Optional["RoleScope"]:
        """
        A missing scope means tenant-wide. Unrecognised values give None,
        and scoped grants of such a role apply nowhere.
        """
        if value is None or value == "":
            return cls.TENANT
        try:
            return cls(value)
        except ValueError:
            return None


ACTIVE_STATUS = "active"


@dataclass(frozen=True)
class RoleSnapshot:
    """Cached view of a role: what it grants and where."""

    permissions: frozenset[str]
    scope: Optional[RoleScope] = RoleScope.TENANT

    @classmethod
    def from_doc(cls, doc: dict) -> "RoleSnapshot":
        return cls(
            permissions=frozenset(doc.get("permissions") or []),
            scope=RoleScope.parse(doc.get("scope")),
        )


@dataclass(frozen=True)
class CoarseGrant:
    """A role key attached directly to a user; always tenant-wide."""

    role_key: str


@dataclass(frozen=True)
class ScopedGrant:
    """A role assignment qualified by a branch."""

    role_key: str
    branch_id: Optional[str] = None


def _first(doc: dict, *keys: str, default=None):
    for key in keys:
        if key in doc and doc[key] is not None:
            return doc[key]
    return default


@dataclass
class UserRecord:
    user_id: str
    status: str
    coarse_grants: list[CoarseGrant] = field(default_factory=list)
    scoped_grants: list[ScopedGrant] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE_STATUS

    @property
    def role_keys(self) -> list[str]:
        return [g.role_key for g in self.coarse_grants]

    @classmethod
    def from_doc(cls, doc: dict) -> "UserRecord":
        scoped = []
        for raw in _first(doc, "role_grants", "roleGrants", default=[]) or []:
            role_key = _first(raw, "role_key", "roleKey")
            if not role_key:
                continue
            branch_id = _first(raw, "branch_id", "branchId")
            scoped.append(
                ScopedGrant(
                    role_key=str(role_key),
                    branch_id=str(branch_id) if branch_id is not None else None,
                )
            )

        return cls(
            user_id=str(_first(doc, "_id", "id", default="")),
            status=str(doc.get("status") or ""),
            coarse_grants=[CoarseGrant(str(k)) for k in doc.get("roles") or []],
            scoped_grants=scoped,
        )
