from .resolver import (
    get_tenant_collection,
    get_global_collection,
    normalize_slug,
    is_valid_slug,
)

__all__ = [
    "get_tenant_collection",
    "get_global_collection",
    "normalize_slug",
    "is_valid_slug",
]
