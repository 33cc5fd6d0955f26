"""
samta/features/analytics/service.py

Append-only product analytics log.

Services call `track()` after a successful action (never before, so a failed
action leaves no trace). Events are kept in memory; the admin dashboard reads
them through `get_events()` / `count_events()`.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from samta.core.logging import get_request_id


class AnalyticsEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_name: str
    user_id: str = "anonymous"
    properties: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    request_id: Optional[str] = None


# Event names
INTEREST_SENT = "interest_sent"
INTEREST_STATUS_UPDATE = "interest_status_update"
MESSAGE_SENT = "message_sent"
PLAN_UPGRADED = "plan_upgraded"
USER_REGISTERED = "user_registered"

_events: List[AnalyticsEvent] = []
_lock = threading.Lock()


def track(
    event_name: str,
    user_id: Optional[str] = None,
    properties: Optional[Dict[str, Any]] = None,
    *,
    now: Optional[datetime] = None,
) -> AnalyticsEvent:
    """Append one event and return it."""
    event = AnalyticsEvent(
        event_name=event_name,
        user_id=user_id or "anonymous",
        properties=dict(properties or {}),
        timestamp=now or datetime.now(timezone.utc),
        request_id=get_request_id(),
    )
    with _lock:
        _events.append(event)
    return event


def get_events(
    event_name: Optional[str] = None,
    user_id: Optional[str] = None,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
) -> List[AnalyticsEvent]:
    """
    Retrieve events matching all given filters.

    Returns a copy, in append order.
    """
    with _lock:
        filtered = list(_events)
    if event_name:
        filtered = [e for e in filtered if e.event_name == event_name]
    if user_id:
        filtered = [e for e in filtered if e.user_id == user_id]
    if start_time:
        filtered = [e for e in filtered if e.timestamp >= start_time]
    if end_time:
        filtered = [e for e in filtered if e.timestamp <= end_time]
    return filtered


def count_events(event_name: str) -> int:
    return len(get_events(event_name=event_name))


def reset_events() -> None:
    """Clear all events (for testing)"""
    with _lock:
        _events.clear()
