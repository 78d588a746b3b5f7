from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gatehouse.core.redaction import redact


class EventKind(str, Enum):
    # consumed by the session subsystem
    STARTUP = "startup"
    CLI_STARTUP = "cli_startup"
    SHUTDOWN = "shutdown"
    LOGIN = "login"
    LOGOUT = "logout"
    USER_CHANGED = "user_changed"
    OUTBOX_CHANGED = "outbox_changed"
    FORM_BEGIN = "form_begin"
    FORM_VALIDATE = "form_validate"
    # emitted by the session subsystem
    LOG = "log"
    NEWUSER = "newuser"
    # answered by collaborators
    AUTHENTICATE = "authenticate"
    CAN = "can"
    OUTBOX = "outbox"


class LogEntry(BaseModel):
    """
    Audit record carried by the `log` event.

    Accepts both the wire names (userId, objectType, objectId) and the
    Python field names.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    user_id: Union[int, str] = Field(alias="userId")
    object_type: str = Field(alias="objectType")
    object_id: Union[int, str] = Field(alias="objectId")
    action: str
    timestamp: float = Field(default_factory=lambda: time.time())
    trace_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("action", "object_type")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("details")
    @classmethod
    def _redacted(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        return redact(v)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
