from __future__ import annotations

import hashlib
import html
import secrets
from typing import Optional

from gatehouse.core.errors import SessionFault
from gatehouse.core.logger import get_logger
from gatehouse.core.security_events import SecurityAuditLogger
from gatehouse.session.context import SessionContext, record_fault


class FormGuard:
    """
    One-time CSRF tokens bound to a session and a form name.

    Rendering a form again replaces its pending token, so only the most
    recently rendered copy of a form can be submitted. A token is consumed by
    the first validation attempt whether or not it matches.
    """

    PREFIX = "form"

    def __init__(self, *, audit_logger: Optional[SecurityAuditLogger] = None, logger=None):
        self.audit_logger = audit_logger
        self.logger = logger or get_logger("session.forms")

    def _form_hash(self, ctx: SessionContext, name: str) -> str:
        raw = f"{name}{ctx.session_id or ''}"
        return self.PREFIX + hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def begin_form(self, ctx: SessionContext, name: str) -> str:
        record = ctx.require_open()
        key = self._form_hash(ctx, name)
        token = secrets.token_hex(32)
        record.form_tokens[key] = token
        return f'<input type="hidden" name="{html.escape(key, quote=True)}" value="{html.escape(token, quote=True)}" />'

    def validate_form(self, ctx: SessionContext, name: str) -> bool:
        record = ctx.require_open()
        key = self._form_hash(ctx, name)
        expected = record.form_tokens.pop(key, None)
        submitted = ctx.form.get(key)
        if expected and isinstance(submitted, str) and secrets.compare_digest(submitted.encode("utf-8"), expected.encode("utf-8")):
            del ctx.form[key]
            return True
        ctx.form.clear()
        record_fault(
            self.audit_logger,
            ctx,
            SessionFault.CSRF_TOKEN_INVALID,
            event="form.validate",
            outcome="rejected",
            details={"form": name, "reason": "missing" if not expected else "mismatch"},
        )
        self.logger.info(f"[{ctx.trace_id}] rejected submission of form {name!r}")
        return False
