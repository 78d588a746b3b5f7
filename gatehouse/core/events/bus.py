from __future__ import annotations

import collections
import itertools
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from gatehouse.core.events.models import EventKind
from gatehouse.core.events.registry import DEFAULT_PRIORITY
from gatehouse.core.events.stats import StatsCounter


Handler = Callable[..., Any]

# answer recorded for a handler that raised while errors are isolated
_FAILED = object()


class EventBusConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    propagate_errors: bool = True
    keep_recent: int = Field(default=200, ge=10, le=10_000)


@dataclass
class _Sub:
    kind: EventKind
    handler: Handler
    priority: int
    seq: int


class EventBus:
    """
    In-process synchronous event bus.

    - handlers for one kind run in ascending priority, ties in subscription order
    - trigger/grab/passes return what the handlers answered
    - handler failures are counted and logged, then re-raised unless
      cfg.propagate_errors is False
    """

    def __init__(self, *, cfg: Optional[EventBusConfig] = None, logger=None):
        self.cfg = cfg or EventBusConfig()
        self.logger = logger

        self._lock = threading.Lock()
        self._seq = itertools.count()
        self._subs: List[_Sub] = []
        self._stats = StatsCounter()
        self._recent: Deque[Dict[str, Any]] = collections.deque(maxlen=int(self.cfg.keep_recent))

    def enabled(self) -> bool:
        return bool(self.cfg.enabled)

    def set_enabled(self, enabled: bool) -> None:
        self.cfg.enabled = bool(enabled)

    def subscribe(self, kind: Union[EventKind, str], handler: Handler, priority: int = DEFAULT_PRIORITY) -> None:
        if not callable(handler):
            raise ValueError("handler must be callable")
        kind = EventKind(kind)
        with self._lock:
            self._subs.append(_Sub(kind=kind, handler=handler, priority=int(priority), seq=next(self._seq)))
            self._subs.sort(key=lambda s: (s.priority, s.seq))

    def unsubscribe(self, handler: Handler) -> int:
        with self._lock:
            keep = [s for s in self._subs if s.handler != handler]
            removed = len(self._subs) - len(keep)
            self._subs = keep
        return removed

    def trigger(self, kind: Union[EventKind, str], *args: Any, **kwargs: Any) -> int:
        """Call every handler; returns how many ran."""
        return len(self._dispatch(EventKind(kind), args, kwargs))

    def grab(self, kind: Union[EventKind, str], *args: Any, **kwargs: Any) -> Any:
        """Call every handler; returns the last non-None answer."""
        out = None
        for r in self._dispatch(EventKind(kind), args, kwargs):
            if r is not None and r is not _FAILED:
                out = r
        return out

    def passes(self, kind: Union[EventKind, str], *args: Any, **kwargs: Any) -> bool:
        """
        True when at least one handler ran and none answered False or failed.

        With no subscriber the answer is False, so an unconfigured
        authorization check denies.
        """
        kind = EventKind(kind)
        results = self._dispatch(kind, args, kwargs)
        ok = bool(results) and all(r is not False and r is not _FAILED for r in results)
        if not ok and self.enabled():
            self._stats.record_denial(kind.value)
        return ok

    def get_stats(self) -> Dict[str, Any]:
        per_kind = self._stats.snapshot()
        with self._lock:
            recent = list(self._recent)[:50]
            subscribers = len(self._subs)
        return {
            "enabled": self.enabled(),
            "triggered_total": sum(c["triggered"] for c in per_kind.values()),
            "delivered_total": sum(c["delivered"] for c in per_kind.values()),
            "handler_errors_total": sum(c["errors"] for c in per_kind.values()),
            "denied_total": sum(c["denied"] for c in per_kind.values()),
            "subscribers": subscribers,
            "per_kind": per_kind,
            "recent": recent,
        }

    def list_subscribers(self) -> List[Dict[str, Any]]:
        with self._lock:
            subs = list(self._subs)
        return [{"kind": s.kind.value, "priority": s.priority, "handler": getattr(s.handler, "__qualname__", getattr(s.handler, "__name__", "handler"))} for s in subs]

    def dump_recent(self, n: int = 200) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._recent)[: max(1, int(n))]

    # ---- internals ----
    def _dispatch(self, kind: EventKind, args: tuple, kwargs: Dict[str, Any]) -> List[Any]:
        if not self.cfg.enabled:
            return []
        with self._lock:
            subs = [s for s in self._subs if s.kind == kind]
        t0 = time.time()
        results: List[Any] = []
        try:
            for s in subs:
                results.append(self._safe_handle(s, args, kwargs))
        finally:
            self._stats.record_dispatch(kind.value, len(results))
            # arguments are never recorded; they may carry credentials
            with self._lock:
                self._recent.appendleft({"kind": kind.value, "handlers": len(results), "ts": t0, "elapsed_ms": round((time.time() - t0) * 1000.0, 3)})
        return results

    def _safe_handle(self, s: _Sub, args: tuple, kwargs: Dict[str, Any]) -> Any:
        try:
            return s.handler(*args, **kwargs)
        except Exception as e:  # noqa: BLE001
            self._stats.record_error(s.kind.value)
            if self.logger is not None:
                self.logger.error(f"Event handler {getattr(s.handler, '__qualname__', 'handler')} failed on {s.kind.value}: {e}")
            if self.cfg.propagate_errors:
                raise
            return _FAILED
