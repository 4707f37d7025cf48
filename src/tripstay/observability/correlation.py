"""Correlation ID management for request tracing."""

import uuid
from contextvars import ContextVar, Token

# Context variable for correlation ID - accessible across threads started by the request
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


def get_correlation_id() -> str:
    """Get current correlation ID from context ("" outside a request)."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    correlation_id_var.reset(token)
