from __future__ import annotations

from collections import deque
from typing import Any

from leadops.context import get_log_context
from leadops.core.events import event_bus

RECENT_EVENTS_LIMIT = 500

# Most recent envelopes only; older ones are evicted as new facts are published.
published_events: deque[dict[str, Any]] = deque(maxlen=RECENT_EVENTS_LIMIT)


def publish(event_type: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Record a committed domain fact and fan it out to in-process subscribers."""
    envelope: dict[str, Any] = {
        "event_type": event_type,
        **get_log_context(),
        "payload": payload,
    }
    published_events.append(envelope)
    event_bus.publish(event_type, envelope)
    return envelope
