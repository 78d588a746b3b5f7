from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from gatehouse.core.events import EventBus, EventKind
from gatehouse.session.context import SessionContext
from gatehouse.session.fingerprint import RequestMetadata
from gatehouse.session.service import SessionService


BROWSER_HEADERS = {
    "Accept-Language": "en-CA,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml",
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0",
}


def make_request(*, peer_addr: str = "203.0.113.7", path: str = "/", method: str = "GET", **headers: str) -> RequestMetadata:
    h = dict(BROWSER_HEADERS)
    for k, v in headers.items():
        h[k.replace("_", "-")] = v
    return RequestMetadata.from_headers(h, peer_addr=peer_addr, method=method, path=path)


def start_request(
    service: SessionService,
    *,
    request: Optional[RequestMetadata] = None,
    cookie: Optional[str] = None,
    form: Optional[Dict[str, Any]] = None,
) -> SessionContext:
    ctx = service.new_context(request or make_request(), cookie_session_id=cookie, form=form)
    service.bus.trigger(EventKind.STARTUP, ctx)
    return ctx


def finish_request(service: SessionService, ctx: SessionContext) -> str:
    service.bus.trigger(EventKind.SHUTDOWN, ctx)
    return str(ctx.session_id)


@dataclass
class FakeDirectory:
    """Answers the authenticate event from an in-memory user table."""

    users: Dict[str, Tuple[str, Dict[str, Any]]] = field(default_factory=dict)
    calls: List[Tuple[str, str]] = field(default_factory=list)

    def add(self, email: str, password: str, **record: Any) -> None:
        self.users[email] = (password, {"email": email, **record})

    def __call__(self, ctx: SessionContext, email: str, password: str, onetime: str = "") -> Any:
        self.calls.append((email, onetime))
        entry = self.users.get(email)
        if entry is None or entry[0] != password:
            return False
        return dict(entry[1])


@dataclass
class FakePolicy:
    """Answers the can event."""

    allow: bool = True
    asked: List[str] = field(default_factory=list)

    def __call__(self, ctx: SessionContext, action: str) -> bool:
        self.asked.append(action)
        return self.allow


@dataclass
class FakeOutbox:
    items: List[Dict[str, Any]] = field(default_factory=list)
    calls: int = 0

    def __call__(self, ctx: SessionContext) -> List[Dict[str, Any]]:
        self.calls += 1
        return list(self.items)


@dataclass
class Recorder:
    """Records every call; optionally answers with a fixed value."""

    answer: Any = None
    calls: List[Tuple[Any, ...]] = field(default_factory=list)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        self.calls.append(args)
        return self.answer


def wire_collaborators(bus: EventBus, *, directory: FakeDirectory, policy: FakePolicy, outbox: FakeOutbox) -> None:
    bus.subscribe(EventKind.AUTHENTICATE, directory)
    bus.subscribe(EventKind.CAN, policy)
    bus.subscribe(EventKind.OUTBOX, outbox)
