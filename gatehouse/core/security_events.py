from __future__ import annotations

import json
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from gatehouse.core.redaction import redact


@dataclass(frozen=True)
class SecurityAuditLogger:
    path: str = os.path.join("logs", "security.jsonl")
    _lock: threading.Lock = field(default_factory=threading.Lock, compare=False, repr=False)

    def log(
        self,
        *,
        trace_id: str,
        severity: str,
        event: str,
        ip: Optional[str],
        endpoint: str,
        outcome: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        payload = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "trace_id": trace_id,
            "severity": severity,
            "event": event,
            "ip": ip,
            "endpoint": endpoint,
            "outcome": outcome,
            "details": redact(details or {}),
        }
        line = json.dumps(payload, ensure_ascii=False, default=str)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
