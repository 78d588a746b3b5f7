from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from gatehouse.core.errors import SessionFault, SessionNotStartedError
from gatehouse.core.security_events import SecurityAuditLogger
from gatehouse.session.fingerprint import RequestMetadata
from gatehouse.session.models import SessionRecord, UserIdentity


@dataclass
class SessionContext:
    """
    Per-request session state.

    One context is created per inbound request (or console run) and handed to
    every session operation; nothing about the current session lives in
    module or process globals.
    """

    request: Optional[RequestMetadata] = None
    cookie_session_id: Optional[str] = None
    form: Dict[str, Any] = field(default_factory=dict)
    trace_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    session_id: Optional[str] = None
    record: Optional[SessionRecord] = None
    started: bool = False
    closed: bool = False
    cli: bool = False
    last_fault: Optional[SessionFault] = None

    def require_open(self) -> SessionRecord:
        if not self.started or self.record is None:
            raise SessionNotStartedError(trace_id=self.trace_id)
        if self.closed:
            raise SessionNotStartedError("Session has already been flushed.", trace_id=self.trace_id)
        return self.record

    @property
    def user(self) -> Optional[UserIdentity]:
        return self.record.user if self.record is not None else None

    @property
    def identified(self) -> bool:
        return bool(self.record is not None and self.record.identified)

    @property
    def outbox(self) -> List[Any]:
        return list(self.record.outbox) if self.record is not None else []

    @property
    def user_id(self) -> Optional[Union[int, str]]:
        return self.record.user_id if self.record is not None else None

    def session_id_changed(self) -> bool:
        return bool(self.session_id) and self.session_id != self.cookie_session_id


def audit(
    audit_logger: Optional[SecurityAuditLogger],
    ctx: SessionContext,
    *,
    severity: str,
    event: str,
    outcome: str,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    if audit_logger is None:
        return
    audit_logger.log(
        trace_id=ctx.trace_id,
        severity=severity,
        event=event,
        ip=ctx.request.remote_addr if ctx.request is not None else None,
        endpoint=ctx.request.path if ctx.request is not None else "cli",
        outcome=outcome,
        details=details,
    )


def record_fault(
    audit_logger: Optional[SecurityAuditLogger],
    ctx: SessionContext,
    fault: SessionFault,
    *,
    event: str,
    outcome: str,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    ctx.last_fault = fault
    audit(audit_logger, ctx, severity="WARN", event=event, outcome=outcome, details={"fault": fault.value, **(details or {})})
