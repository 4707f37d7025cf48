"""Shared FastAPI dependencies."""

from tripstay.infra.store import Store, get_store


def store_dependency() -> Store:
    """Process-wide store; tests override this via ``dependency_overrides``."""
    return get_store()
