from .store import MongoRoleStore, ROLES_COLLECTION
from .service import RoleService, ensure_defaults_seeded
from .routes import roles_router

__all__ = [
    "MongoRoleStore",
    "ROLES_COLLECTION",
    "RoleService",
    "ensure_defaults_seeded",
    "roles_router",
]
