"""Per-request event collector using contextvars.

Usage:
    # In the request handler (main.py):
    reset_events()
    agent.process_message(...)
    events = get_events()

    # In the orchestration stages:
    emit_event(source="response_validator", status="violation", message="...", details={...})
"""

import contextvars
from typing import Any, Optional

_events: contextvars.ContextVar[Optional[list[dict[str, Any]]]] = contextvars.ContextVar(
    "tripwise_events", default=None
)


def reset_events() -> None:
    """Start a fresh event list for a new request."""
    _events.set([])


def emit_event(*, source: str, status: str, message: str, details: dict[str, Any] | None = None) -> None:
    """Record a stage event for the current request."""
    events = _events.get()
    if events is None:
        events = []
        _events.set(events)
    event = {"source": source, "status": status, "message": message}
    if details:
        event["details"] = details
    events.append(event)


def get_events() -> list[dict[str, Any]]:
    """Return all events collected during the current request."""
    return list(_events.get() or [])
