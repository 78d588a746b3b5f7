from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Request, Response

from gatehouse.core.config.models import CookieParams
from gatehouse.core.events import EventKind
from gatehouse.session.fingerprint import RequestMetadata
from gatehouse.session.service import SessionService


def _client_ip(request: Request) -> Optional[str]:
    return getattr(getattr(request, "client", None), "host", None)


def request_metadata(request: Request, *, trusted_proxies=()) -> RequestMetadata:  # noqa: ANN001
    return RequestMetadata.from_headers(
        request.headers,
        peer_addr=_client_ip(request),
        trusted_proxies=trusted_proxies,
        method=request.method,
        path=request.url.path,
    )


def set_session_cookie(resp: Response, params: CookieParams, session_id: str) -> None:
    resp.set_cookie(
        key=params.name,
        value=session_id,
        max_age=params.lifetime or None,
        path=params.path,
        secure=params.secure,
        httponly=True,
        samesite=params.samesite,
    )


class SessionMiddleware:
    """
    Per-request session binding:
    1) build request metadata (client address through trusted proxies)
    2) startup: resume or create the session, check the fingerprint
    3) expose the context as request.state.session
    4) shutdown: flush once, even when the handler raised
    5) send the cookie when the session id is new or was rotated
    """

    def __init__(self, *, service: SessionService):
        self.service = service
        self.bus = service.bus
        self.cookie = service.manager.cookie_params()

    async def __call__(self, request: Request, call_next):  # noqa: ANN001
        trace_id = getattr(request.state, "trace_id", None) or uuid.uuid4().hex
        request.state.trace_id = trace_id
        meta = request_metadata(request, trusted_proxies=self.service.cfg.session.trusted_proxies)
        incoming = request.cookies.get(self.cookie.name)
        ctx = self.service.new_context(meta, cookie_session_id=incoming, trace_id=trace_id)
        request.state.session = ctx

        self.bus.trigger(EventKind.STARTUP, ctx)
        try:
            resp = await call_next(request)
        finally:
            self.bus.trigger(EventKind.SHUTDOWN, ctx)

        if ctx.session_id_changed():
            set_session_cookie(resp, self.cookie, str(ctx.session_id))
        return resp
