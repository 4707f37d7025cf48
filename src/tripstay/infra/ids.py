"""Entity id generation."""

import uuid


def new_id() -> str:
    """Return a fresh 32-char hex id."""
    return uuid.uuid4().hex
