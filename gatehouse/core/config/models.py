from __future__ import annotations

import ipaddress
import os
import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gatehouse.core.events.bus import EventBusConfig


_COOKIE_NAME = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")


class SessionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    gc_maxlifetime: int = Field(default=120, ge=1, le=60 * 24 * 30)  # minutes
    gc_probability: int = Field(default=1, ge=0)
    gc_divisor: int = Field(default=1000, ge=1)
    save_path: str = os.path.join("var", "sessions")
    cookie_name: str = "GHSESSID"
    cookie_path: str = "/"
    cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    trusted_proxies: List[str] = Field(default_factory=list)

    @field_validator("cookie_name")
    @classmethod
    def _cookie_name(cls, v: str) -> str:
        if not _COOKIE_NAME.match(str(v)):
            raise ValueError("cookie_name must be 1-64 chars of [A-Za-z0-9_-]")
        return v

    @field_validator("trusted_proxies")
    @classmethod
    def _networks(cls, v: List[str]) -> List[str]:
        out: List[str] = []
        for item in v:
            out.append(str(ipaddress.ip_network(str(item).strip(), strict=False)))
        return out

    @property
    def gc_maxlifetime_seconds(self) -> int:
        return int(self.gc_maxlifetime) * 60


class GlobalConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    use_ssl: bool = False


class AuditConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    security_log_path: str = os.path.join("logs", "security.jsonl")
    audit_trail_path: str = os.path.join("logs", "audit.jsonl")


class CookieParams(BaseModel):
    """
    Attributes of the session cookie.

    Lifetime 0 means a browser-session cookie (no Max-Age/Expires); the
    cookie is always HTTP-only.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    lifetime: int = 0
    path: str = "/"
    httponly: Literal[True] = True
    secure: bool = False
    samesite: Literal["lax", "strict", "none"] = "lax"


class GatehouseConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    root_dir: str = "."
    log_dir: str = "logs"
    session: SessionConfig = Field(default_factory=SessionConfig)
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    events: EventBusConfig = Field(default_factory=EventBusConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    def session_dir(self) -> str:
        path = self.session.save_path
        if os.path.isabs(path):
            return path
        return os.path.join(self.root_dir, path)

    def cookie_params(self, *, secure: Optional[bool] = None) -> CookieParams:
        return CookieParams(
            name=self.session.cookie_name,
            path=self.session.cookie_path,
            secure=bool(self.global_.use_ssl if secure is None else secure),
            samesite=self.session.cookie_samesite,
        )
