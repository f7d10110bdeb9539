from .store import MongoUserStore, USERS_COLLECTION

__all__ = ["MongoUserStore", "USERS_COLLECTION"]
