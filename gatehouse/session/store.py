from __future__ import annotations

import copy
import json
import os
import re
import secrets
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from gatehouse.core.config.io import atomic_write_json, read_json_file
from gatehouse.core.errors import SessionStoreError


_SESSION_ID = re.compile(r"^[A-Za-z0-9_\-]{32,128}$")


@dataclass(frozen=True)
class StoredSession:
    session_id: str
    data: Dict[str, Any]
    is_new: bool


class SessionStore(ABC):
    """
    Key-value session storage keyed by an opaque session id.

    - open() never resumes an unknown, malformed or expired id; it issues a
      fresh one instead so a client cannot choose its own session id
    - write() is last-writer-wins per session id
    - expiry is idle time since the last write, swept by gc()
    """

    def __init__(self, *, max_lifetime_seconds: int, gc_probability: int = 1, gc_divisor: int = 1000, logger=None):
        if int(max_lifetime_seconds) < 1:
            raise ValueError("max_lifetime_seconds must be positive")
        self.max_lifetime_seconds = int(max_lifetime_seconds)
        self.gc_probability = max(0, int(gc_probability))
        self.gc_divisor = max(1, int(gc_divisor))
        self.logger = logger

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(32)

    @staticmethod
    def is_valid_session_id(session_id: Optional[str]) -> bool:
        return bool(session_id) and bool(_SESSION_ID.match(str(session_id)))

    def open(self, session_id: Optional[str]) -> StoredSession:
        self.maybe_gc()
        if self.is_valid_session_id(session_id):
            data = self._read(str(session_id))
            if data is not None:
                return StoredSession(session_id=str(session_id), data=data, is_new=False)
        return StoredSession(session_id=self.new_session_id(), data={}, is_new=True)

    def regenerate(self, session_id: Optional[str]) -> str:
        """Drop the old id's data and hand out a new id."""
        if self.is_valid_session_id(session_id):
            self.destroy(str(session_id))
        return self.new_session_id()

    def maybe_gc(self) -> int:
        if self.gc_probability <= 0:
            return 0
        if secrets.randbelow(self.gc_divisor) >= self.gc_probability:
            return 0
        removed = self.gc()
        if removed and self.logger is not None:
            self.logger.info(f"Session GC removed {removed} expired session(s).")
        return removed

    def _expired(self, updated_at: float, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return (now - float(updated_at)) > self.max_lifetime_seconds

    @abstractmethod
    def _read(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Data for a live session, or None when unknown/expired."""

    @abstractmethod
    def write(self, session_id: str, data: Dict[str, Any]) -> None: ...

    @abstractmethod
    def destroy(self, session_id: str) -> None: ...

    @abstractmethod
    def gc(self) -> int:
        """Remove expired sessions; returns how many were removed."""


class InMemorySessionStore(SessionStore):
    def __init__(self, *, max_lifetime_seconds: int = 7200, gc_probability: int = 1, gc_divisor: int = 1000, logger=None):
        super().__init__(max_lifetime_seconds=max_lifetime_seconds, gc_probability=gc_probability, gc_divisor=gc_divisor, logger=logger)
        self._lock = threading.Lock()
        self._items: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    def _read(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            item = self._items.get(session_id)
            if item is None:
                return None
            updated_at, data = item
            if self._expired(updated_at):
                del self._items[session_id]
                return None
            return copy.deepcopy(data)

    def write(self, session_id: str, data: Dict[str, Any]) -> None:
        if not self.is_valid_session_id(session_id):
            raise SessionStoreError("Invalid session id.")
        with self._lock:
            self._items[session_id] = (time.time(), copy.deepcopy(data))

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._items.pop(session_id, None)

    def gc(self) -> int:
        now = time.time()
        with self._lock:
            stale = [sid for sid, (ts, _d) in self._items.items() if self._expired(ts, now)]
            for sid in stale:
                del self._items[sid]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._items


class FileSessionStore(SessionStore):
    """
    One JSON file per session under save_dir (sess_<id>.json).

    Each flush replaces the file atomically, so readers never see a torn record.
    """

    PREFIX = "sess_"

    def __init__(self, *, save_dir: str, max_lifetime_seconds: int = 7200, gc_probability: int = 1, gc_divisor: int = 1000, logger=None):
        super().__init__(max_lifetime_seconds=max_lifetime_seconds, gc_probability=gc_probability, gc_divisor=gc_divisor, logger=logger)
        self.save_dir = save_dir
        try:
            os.makedirs(self.save_dir, mode=0o700, exist_ok=True)
        except OSError as e:
            raise SessionStoreError("Session directory is not writable.", path=save_dir, error=str(e)) from e

    def _path(self, session_id: str) -> str:
        return os.path.join(self.save_dir, f"{self.PREFIX}{session_id}.json")

    def _read(self, session_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(session_id)
        rr = read_json_file(path)
        if not rr.ok:
            if rr.error == "missing":
                return None
            if rr.error and (rr.error.startswith("corrupt_json") or rr.error == "not_object"):
                if self.logger is not None:
                    self.logger.warning(f"Discarding unreadable session file: {rr.error}")
                self.destroy(session_id)
                return None
            raise SessionStoreError("Unable to read session.", error=rr.error)
        updated_at = rr.data.get("updated_at")
        data = rr.data.get("data")
        if not isinstance(updated_at, (int, float)) or not isinstance(data, dict):
            self.destroy(session_id)
            return None
        if self._expired(updated_at):
            self.destroy(session_id)
            return None
        return data

    def write(self, session_id: str, data: Dict[str, Any]) -> None:
        if not self.is_valid_session_id(session_id):
            raise SessionStoreError("Invalid session id.")
        try:
            json.dumps(data)
        except (TypeError, ValueError) as e:
            raise SessionStoreError("Session data is not serializable.", error=str(e)) from e
        try:
            atomic_write_json(self._path(session_id), {"updated_at": time.time(), "data": data})
        except OSError as e:
            raise SessionStoreError("Unable to write session.", error=str(e)) from e

    def destroy(self, session_id: str) -> None:
        try:
            os.remove(self._path(session_id))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise SessionStoreError("Unable to delete session.", error=str(e)) from e

    def gc(self) -> int:
        now = time.time()
        removed = 0
        try:
            names = os.listdir(self.save_dir)
        except OSError as e:
            raise SessionStoreError("Unable to list sessions.", error=str(e)) from e
        for name in names:
            if not (name.startswith(self.PREFIX) and name.endswith(".json")):
                continue
            path = os.path.join(self.save_dir, name)
            try:
                if self._expired(os.path.getmtime(path), now):
                    os.remove(path)
                    removed += 1
            except FileNotFoundError:
                continue
        return removed
