"""
Per-request session state, hijack detection, login transitions and CSRF form tokens.
"""

from gatehouse.session.context import SessionContext
from gatehouse.session.fingerprint import RequestMetadata, compute_fingerprint, resolve_remote_addr
from gatehouse.session.forms import FormGuard
from gatehouse.session.identity import IdentityCache
from gatehouse.session.lifecycle import SessionManager
from gatehouse.session.models import SessionRecord, UserIdentity
from gatehouse.session.service import SessionService
from gatehouse.session.store import FileSessionStore, InMemorySessionStore, SessionStore, StoredSession

__all__ = [
    "SessionContext",
    "RequestMetadata",
    "compute_fingerprint",
    "resolve_remote_addr",
    "FormGuard",
    "IdentityCache",
    "SessionManager",
    "SessionRecord",
    "UserIdentity",
    "SessionService",
    "FileSessionStore",
    "InMemorySessionStore",
    "SessionStore",
    "StoredSession",
]
