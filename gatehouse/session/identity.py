"""
Session-scoped copies of the current user and their pending outbox.

Both are pushed in from elsewhere: `user_changed` carries the fresh user
record, `outbox_changed` asks us to pull a new summary through the `outbox`
event.
"""

from __future__ import annotations

from typing import Any

from gatehouse.core.events import EventBus, EventKind
from gatehouse.core.logger import get_logger
from gatehouse.session.context import SessionContext
from gatehouse.session.models import UserIdentity


class IdentityCache:
    def __init__(self, *, bus: EventBus, logger=None):
        self.bus = bus
        self.logger = logger or get_logger("session.identity")

    def reload_user(self, ctx: SessionContext, data: Any) -> None:
        """
        Replace the cached user. The caller is trusted; no lookup is made.

        Clearing the user also clears `identified`.
        """
        record = ctx.require_open()
        user = UserIdentity.coerce(data)
        if user is None:
            record.identified = False
        record.user = user

    def reload_outbox(self, ctx: SessionContext) -> None:
        record = ctx.require_open()
        summary = self.bus.grab(EventKind.OUTBOX, ctx)
        record.outbox = list(summary or [])
        self.logger.debug(f"[{ctx.trace_id}] outbox refreshed ({len(record.outbox)} item(s))")
