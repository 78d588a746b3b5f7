from __future__ import annotations

import secrets
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from gatehouse.core.config.models import CookieParams, GatehouseConfig
from gatehouse.core.errors import SessionFault, ValidationError
from gatehouse.core.events import EventBus, EventKind, LogEntry
from gatehouse.core.logger import get_logger
from gatehouse.core.security_events import SecurityAuditLogger
from gatehouse.session.context import SessionContext, audit, record_fault
from gatehouse.session.fingerprint import compute_fingerprint
from gatehouse.session.identity import IdentityCache
from gatehouse.session.models import SessionRecord, UserIdentity
from gatehouse.session.store import SessionStore


class SessionManager:
    """
    Session lifecycle: discover/create, fingerprint check, login, reset, flush.

    Identity transitions:
    - fingerprint mismatch or logout: wipe and reinitialize as anonymous
    - login as a different user: audit, wipe, rotate the session id, then
      install the new identity
    - login as the already cached user: install without a wipe
    - login refused by authorization: wipe
    """

    def __init__(
        self,
        *,
        cfg: GatehouseConfig,
        store: SessionStore,
        bus: EventBus,
        identity: IdentityCache,
        audit_logger: Optional[SecurityAuditLogger] = None,
        logger=None,
    ):
        self.cfg = cfg
        self.store = store
        self.bus = bus
        self.identity = identity
        self.audit_logger = audit_logger
        self.logger = logger or get_logger("session.lifecycle")

    def cookie_params(self) -> CookieParams:
        return self.cfg.cookie_params()

    # ---- request lifecycle ----
    def startup(self, ctx: SessionContext) -> None:
        if ctx.started:
            return
        if ctx.request is None:
            raise ValidationError("Request metadata is required to start a session.", trace_id=ctx.trace_id)
        stored = self.store.open(ctx.cookie_session_id)
        ctx.session_id = stored.session_id
        ctx.started = True
        ctx.closed = False
        ctx.cli = False

        record = self._load_record(ctx, stored.data)
        if record is not None and record.magic:
            ctx.record = record
            if not secrets.compare_digest(record.magic.encode("utf-8"), compute_fingerprint(ctx.request).encode("utf-8")):
                record_fault(
                    self.audit_logger,
                    ctx,
                    SessionFault.HIJACK_SUSPECTED,
                    event="session.fingerprint_mismatch",
                    outcome="reset",
                    details={"user_id": record.user_id},
                )
                self.logger.warning(f"[{ctx.trace_id}] session fingerprint changed; resetting session")
                self.reset(ctx)
        else:
            self._init(ctx)

    def startup_cli(self, ctx: SessionContext) -> None:
        """
        Console/batch runs have no cookie or headers; they get an
        unpersisted anonymous session for user 0.
        """
        ctx.cli = True
        ctx.started = True
        ctx.closed = False
        ctx.session_id = None
        ctx.record = SessionRecord(user=UserIdentity(id=0))

    def shutdown(self, ctx: SessionContext) -> None:
        if not ctx.started or ctx.closed:
            return
        ctx.closed = True
        if ctx.cli or ctx.record is None or not ctx.session_id:
            return
        self.store.write(ctx.session_id, ctx.record.to_store())

    # ---- state transitions ----
    def reset(self, ctx: SessionContext) -> None:
        """Forget everything in the current session and start over as anonymous."""
        ctx.require_open()
        ctx.record = None
        self._init(ctx)

    def login(self, ctx: SessionContext, email: str, password: str, onetime: str = "") -> bool:
        record = ctx.require_open()
        old_id = record.user_id

        user = self._as_identity(ctx, self.bus.grab(EventKind.AUTHENTICATE, ctx, email, password, onetime))
        if user is None:
            record_fault(self.audit_logger, ctx, SessionFault.AUTHENTICATION_FAILED, event="session.login", outcome="denied")
            return False

        if old_id != user.id:
            self.bus.trigger(
                EventKind.LOG,
                ctx,
                LogEntry(user_id=user.id, object_type="user", object_id=user.id, action="login", trace_id=ctx.trace_id),
            )
            self.reset(ctx)
            self._rotate_session_id(ctx)

        record = ctx.require_open()
        record.user = user
        record.identified = True
        try:
            self.identity.reload_outbox(ctx)
            self.bus.trigger(EventKind.NEWUSER, ctx)
            allowed = self.bus.passes(EventKind.CAN, ctx, "login")
        except Exception:
            # never flush an identity that did not get through the authorization check
            self.reset(ctx)
            raise

        if allowed:
            audit(self.audit_logger, ctx, severity="INFO", event="session.login", outcome="ok", details={"user_id": user.id})
            return True

        record_fault(
            self.audit_logger,
            ctx,
            SessionFault.AUTHORIZATION_DENIED,
            event="session.login",
            outcome="forbidden",
            details={"user_id": user.id},
        )
        self.reset(ctx)
        return False

    # ---- internals ----
    def _init(self, ctx: SessionContext) -> None:
        magic = compute_fingerprint(ctx.request) if ctx.request is not None else ""
        ctx.record = SessionRecord.anonymous(magic)

    def _rotate_session_id(self, ctx: SessionContext) -> None:
        if ctx.cli:
            return
        ctx.session_id = self.store.regenerate(ctx.session_id)

    def _load_record(self, ctx: SessionContext, data: Dict[str, Any]) -> Optional[SessionRecord]:
        if not data:
            return None
        try:
            return SessionRecord.model_validate(data)
        except PydanticValidationError as e:
            self.logger.warning(f"[{ctx.trace_id}] discarding invalid session record: {e.error_count()} error(s)")
            return None

    def _as_identity(self, ctx: SessionContext, answer: Any) -> Optional[UserIdentity]:
        if isinstance(answer, UserIdentity):
            return answer
        if isinstance(answer, Mapping):
            try:
                return UserIdentity.model_validate(dict(answer))
            except PydanticValidationError:
                self.logger.warning(f"[{ctx.trace_id}] authenticate answered a record without a usable id")
                return None
        return None
