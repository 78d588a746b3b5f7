"""
Typed synchronous event bus used by the session subsystem and its collaborators.
"""

from gatehouse.core.events.models import EventKind, LogEntry
from gatehouse.core.events.bus import EventBus, EventBusConfig
from gatehouse.core.events.registry import DEFAULT_PRIORITY, SESSION_HANDLER_PRIORITIES
from gatehouse.core.events.subscribers import AuditTrailSubscriber

__all__ = [
    "EventKind",
    "LogEntry",
    "EventBus",
    "EventBusConfig",
    "DEFAULT_PRIORITY",
    "SESSION_HANDLER_PRIORITIES",
    "AuditTrailSubscriber",
]
