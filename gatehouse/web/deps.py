from __future__ import annotations

from fastapi import Request

from gatehouse.core.errors import SessionNotStartedError
from gatehouse.session.context import SessionContext


def get_session(request: Request) -> SessionContext:
    ctx = getattr(request.state, "session", None)
    if not isinstance(ctx, SessionContext):
        raise SessionNotStartedError("Session middleware is not installed.")
    return ctx


async def session_with_form(request: Request) -> SessionContext:
    """
    Session context with the submitted form loaded into ctx.form, ready for
    the form_validate event. Repeated field names keep the last value.
    """
    ctx = get_session(request)
    form = await request.form()
    ctx.form.clear()
    for key, value in form.multi_items():
        ctx.form[key] = value
    return ctx
