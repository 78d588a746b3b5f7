from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Dict


@dataclass
class KindCounts:
    triggered: int = 0
    delivered: int = 0
    errors: int = 0
    denied: int = 0


class StatsCounter:
    """Dispatch counters per event kind. Totals are summed by the caller."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._kinds: Dict[str, KindCounts] = {}

    def _counts(self, kind: str) -> KindCounts:
        c = self._kinds.get(kind)
        if c is None:
            c = self._kinds[kind] = KindCounts()
        return c

    def record_dispatch(self, kind: str, delivered: int) -> None:
        with self._lock:
            c = self._counts(kind)
            c.triggered += 1
            c.delivered += int(delivered)

    def record_error(self, kind: str) -> None:
        with self._lock:
            self._counts(kind).errors += 1

    def record_denial(self, kind: str) -> None:
        """A `passes` check on this kind came back False."""
        with self._lock:
            self._counts(kind).denied += 1

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {k: asdict(v) for k, v in self._kinds.items()}
