"""
Permission evaluation.

Permission format:  dot-separated tokens, e.g. "orders.create", "menu.items.read"
  - "<prefix>.*" grants the prefix itself and everything below it
  - "*"          grants everything

Only prefix wildcards are supported; "*.read" or "orders.*.read" are
matched literally.
"""

from typing import Iterable

GLOBAL_WILDCARD = "*"
WILDCARD_SUFFIX = ".*"


def matches(required: str, granted: str) -> bool:
    """Check whether a single granted permission covers the required one."""
    if granted == GLOBAL_WILDCARD:
        return True
    if granted == required:
        return True
    if granted.endswith(WILDCARD_SUFFIX):
        prefix = granted[: -len(WILDCARD_SUFFIX)]
        return required == prefix or required.startswith(prefix + ".")
    return False


def _is_granted(required: str, granted: frozenset[str] | set[str]) -> bool:
    if required in granted:
        return True
    return any(matches(required, g) for g in granted)


def has_all(required: Iterable[str], granted: frozenset[str] | set[str]) -> bool:
    """
    True when every required permission is covered by the granted set.

    An empty requirement is vacuously satisfied.
    """
    if GLOBAL_WILDCARD in granted:
        return True
    return all(_is_granted(req, granted) for req in required)


def has_any(required: Iterable[str], granted: frozenset[str] | set[str]) -> bool:
    """True when at least one required permission is covered."""
    if GLOBAL_WILDCARD in granted:
        return True
    return any(has_all([req], granted) for req in required)
