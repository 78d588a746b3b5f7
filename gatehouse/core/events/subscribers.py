from __future__ import annotations

import json
import os
import threading
from typing import Any

from gatehouse.core.events.models import LogEntry


class AuditTrailSubscriber:
    """
    Writes every `log` event to logs/audit.jsonl.

    Subscribe it as the logging sink:
        bus.subscribe(EventKind.LOG, AuditTrailSubscriber(path=...))
    """

    def __init__(self, *, path: str = os.path.join("logs", "audit.jsonl")):
        self.path = path
        self._lock = threading.Lock()
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    def __call__(self, ctx: Any, entry: LogEntry) -> None:
        row = entry.to_wire()
        line = json.dumps(row, ensure_ascii=False, default=str)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
