from __future__ import annotations

from typing import Dict

from gatehouse.core.events.models import EventKind


DEFAULT_PRIORITY = 50

# Subscriber priority of each session handler. Lower runs first; shutdown
# runs last so other subscribers can still mutate the record before the flush.
SESSION_HANDLER_PRIORITIES: Dict[EventKind, int] = {
    EventKind.STARTUP: 10,
    EventKind.CLI_STARTUP: 10,
    EventKind.SHUTDOWN: 99,
    EventKind.LOGIN: 1,
    EventKind.LOGOUT: 1,
    EventKind.USER_CHANGED: 1,
    EventKind.OUTBOX_CHANGED: DEFAULT_PRIORITY,
    EventKind.FORM_BEGIN: DEFAULT_PRIORITY,
    EventKind.FORM_VALIDATE: DEFAULT_PRIORITY,
}
