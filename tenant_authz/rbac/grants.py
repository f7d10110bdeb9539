"""Combine a user's coarse and branch-scoped grants into one permission set."""

from typing import Mapping, Optional

from .models import RoleScope, RoleSnapshot, UserRecord


def _same_branch(grant_branch: Optional[str], context_branch: Optional[str]) -> bool:
    if not grant_branch or not context_branch:
        return False
    return str(grant_branch) == str(context_branch)


def aggregate(
    user: UserRecord,
    roles: Mapping[str, RoleSnapshot],
    branch_context: Optional[str] = None,
) -> frozenset[str]:
    """
    Return the effective permissions of ``user`` for ``branch_context``.

    Coarse grants count tenant-wide even when the role itself declares
    branch scope. Scoped grants of branch roles only count inside their
    own branch. Scoped grants of a role with an unrecognised scope count
    nowhere. Role keys missing from ``roles`` are ignored.
    """
    granted: set[str] = set()

    for grant in user.coarse_grants:
        role = roles.get(grant.role_key)
        if role is None:
            continue
        granted.update(role.permissions)

    for grant in user.scoped_grants:
        role = roles.get(grant.role_key)
        if role is None:
            continue
        if role.scope is RoleScope.TENANT:
            granted.update(role.permissions)
        elif role.scope is RoleScope.BRANCH and _same_branch(
            grant.branch_id, branch_context
        ):
            granted.update(role.permissions)

    return frozenset(granted)
