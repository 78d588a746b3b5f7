from __future__ import annotations

from typing import Any, Dict, Optional

from gatehouse.core.config.models import GatehouseConfig
from gatehouse.core.events import AuditTrailSubscriber, EventBus, EventKind, SESSION_HANDLER_PRIORITIES
from gatehouse.core.logger import get_logger
from gatehouse.core.security_events import SecurityAuditLogger
from gatehouse.session.context import SessionContext
from gatehouse.session.fingerprint import RequestMetadata
from gatehouse.session.forms import FormGuard
from gatehouse.session.identity import IdentityCache
from gatehouse.session.lifecycle import SessionManager
from gatehouse.session.store import FileSessionStore, SessionStore


class SessionService:
    """
    Owns the session components and wires them to the event bus.

    Typical request flow:
        ctx = service.new_context(request_metadata, cookie_session_id=cookie)
        bus.trigger(EventKind.STARTUP, ctx)
        ... bus.passes(EventKind.LOGIN, ctx, email, password) ...
        bus.trigger(EventKind.SHUTDOWN, ctx)
    """

    def __init__(
        self,
        *,
        cfg: GatehouseConfig,
        store: SessionStore,
        bus: EventBus,
        audit_logger: Optional[SecurityAuditLogger] = None,
        logger=None,
    ):
        self.cfg = cfg
        self.store = store
        self.bus = bus
        self.logger = logger or get_logger("session")
        self.identity = IdentityCache(bus=bus)
        self.manager = SessionManager(cfg=cfg, store=store, bus=bus, identity=self.identity, audit_logger=audit_logger)
        self.forms = FormGuard(audit_logger=audit_logger)
        self._bootstrapped = False

    @classmethod
    def from_config(cls, cfg: GatehouseConfig, *, bus: Optional[EventBus] = None, store: Optional[SessionStore] = None, logger=None) -> "SessionService":
        """
        Build the default stack: file-backed store under the configured save
        path, JSONL security audit, and the `log` event written to the audit trail.
        """
        logger = logger or get_logger("session")
        bus = bus or EventBus(cfg=cfg.events, logger=logger)
        if store is None:
            store = FileSessionStore(
                save_dir=cfg.session_dir(),
                max_lifetime_seconds=cfg.session.gc_maxlifetime_seconds,
                gc_probability=cfg.session.gc_probability,
                gc_divisor=cfg.session.gc_divisor,
                logger=logger,
            )
        svc = cls(cfg=cfg, store=store, bus=bus, audit_logger=SecurityAuditLogger(path=cfg.audit.security_log_path), logger=logger)
        bus.subscribe(EventKind.LOG, AuditTrailSubscriber(path=cfg.audit.audit_trail_path))
        svc.bootstrap()
        return svc

    def bootstrap(self) -> None:
        if self._bootstrapped:
            return
        handlers = {
            EventKind.STARTUP: self.manager.startup,
            EventKind.CLI_STARTUP: self.manager.startup_cli,
            EventKind.SHUTDOWN: self.manager.shutdown,
            EventKind.LOGIN: self.manager.login,
            EventKind.LOGOUT: self.manager.reset,
            EventKind.USER_CHANGED: self.identity.reload_user,
            EventKind.OUTBOX_CHANGED: self.identity.reload_outbox,
            EventKind.FORM_BEGIN: self.forms.begin_form,
            EventKind.FORM_VALIDATE: self.forms.validate_form,
        }
        for kind, handler in handlers.items():
            self.bus.subscribe(kind, handler, priority=SESSION_HANDLER_PRIORITIES[kind])
        self._bootstrapped = True
        self.logger.info(f"Session handlers registered ({len(handlers)} events).")

    def new_context(
        self,
        request: Optional[RequestMetadata] = None,
        *,
        cookie_session_id: Optional[str] = None,
        form: Optional[Dict[str, Any]] = None,
        trace_id: Optional[str] = None,
    ) -> SessionContext:
        ctx = SessionContext(request=request, cookie_session_id=cookie_session_id, form=dict(form or {}))
        if trace_id:
            ctx.trace_id = str(trace_id)
        return ctx
