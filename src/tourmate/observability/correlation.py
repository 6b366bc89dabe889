"""Correlation ID handling so every log line of a request can be tied together."""

import uuid
from contextvars import ContextVar, Token

# One value per request; contextvars keep it isolated across concurrent requests
correlation_id_var: ContextVar[str] = ContextVar("tourmate_correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"


def generate_correlation_id() -> str:
    """Return a fresh random correlation ID."""
    return uuid.uuid4().hex


def get_correlation_id() -> str:
    """Return the correlation ID bound to the current context ("" if none)."""
    return correlation_id_var.get()


def bind_correlation_id(cid: str) -> Token[str]:
    """Bind a correlation ID to the current context."""
    return correlation_id_var.set(cid)


def unbind_correlation_id(token: Token[str]) -> None:
    """Restore whatever correlation ID was bound before `bind_correlation_id`."""
    correlation_id_var.reset(token)
