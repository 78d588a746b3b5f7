from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from gatehouse.core.redaction import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SessionFault(str, Enum):
    """
    Recoverable session outcomes. These are never raised; they are recorded on
    the request context and in the security audit log.
    """

    HIJACK_SUSPECTED = "hijack_suspected"
    AUTHENTICATION_FAILED = "authentication_failed"
    AUTHORIZATION_DENIED = "authorization_denied"
    CSRF_TOKEN_INVALID = "csrf_token_invalid"


@dataclass
class GatehouseError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Core types ----
class ConfigError(GatehouseError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class SessionStoreError(GatehouseError):
    def __init__(self, user_message: str = "Session storage error.", **ctx: Any):
        super().__init__("session_store_error", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)


class SessionNotStartedError(GatehouseError):
    def __init__(self, user_message: str = "Session has not been started.", **ctx: Any):
        super().__init__("session_not_started", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)


class ValidationError(GatehouseError):
    def __init__(self, user_message: str = "Invalid request.", **ctx: Any):
        super().__init__("validation_error", user_message, severity=Severity.WARN, recoverable=False, context=ctx)
