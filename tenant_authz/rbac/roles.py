"""
Default role definitions seeded into every tenant.

Permission format:  "{module}.{action}" with optional prefix wildcards
  - "menu.*"  means every menu permission
  - "*"       means ALL permissions (owner only)

Scope:
  - tenant : the role applies everywhere in the tenant
  - branch : a scoped grant of the role only applies in its own branch
"""

from .models import RoleScope

DEFAULT_ROLES: dict[str, dict] = {
    "owner": {
        "name": "Owner",
        "description": "Full control",
        "scope": RoleScope.TENANT.value,
        "permissions": ["*"],
        "is_system": True,
    },
    "admin": {
        "name": "Admin",
        "description": "Admin",
        "scope": RoleScope.TENANT.value,
        "permissions": [
            "dashboard.view",
            "settings.manage",
            "branches.manage",
            "roles.*",
            "menu.*",
            "inventory.*",
            "orders.*",
            "hr.*",
            "reports.*",
            "billing.*",
            "pos.till.manage",
        ],
        "is_system": True,
    },
    "manager": {
        "name": "Manager",
        "description": "Store manager",
        "scope": RoleScope.TENANT.value,
        "permissions": [
            "dashboard.view",
            "menu.*",
            "inventory.*",
            "orders.*",
            "hr.*",
            "reports.*",
            "pos.till.manage",
        ],
        "is_system": False,
    },
    "cashier": {
        "name": "Cashier",
        "description": "POS cashier",
        "scope": RoleScope.BRANCH.value,
        "permissions": [
            "orders.create",
            "orders.read",
            "orders.update",
            "payments.take",
            "customers.read",
            "menu.items.read",
            "pos.till.manage",
        ],
        "is_system": False,
    },
    "kitchen": {
        "name": "Kitchen",
        "description": "Kitchen staff",
        "scope": RoleScope.BRANCH.value,
        "permissions": ["kitchen.read", "kitchen.update", "orders.read"],
        "is_system": False,
    },
    "inventory": {
        "name": "Inventory",
        "description": "Inventory",
        "scope": RoleScope.BRANCH.value,
        "permissions": ["inventory.*", "menu.read"],
        "is_system": False,
    },
    "hr": {
        "name": "HR",
        "description": "HR staff",
        "scope": RoleScope.TENANT.value,
        "permissions": ["hr.*"],
        "is_system": False,
    },
    "accountant": {
        "name": "Accountant",
        "description": "Accounts",
        "scope": RoleScope.TENANT.value,
        "permissions": ["reports.*", "billing.*", "orders.read"],
        "is_system": False,
    },
    "viewer": {
        "name": "Viewer",
        "description": "Read-only",
        "scope": RoleScope.TENANT.value,
        "permissions": [
            "dashboard.view",
            "reports.view",
            "menu.read",
            "inventory.read",
            "orders.read",
        ],
        "is_system": False,
    },
}
