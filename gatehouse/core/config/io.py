from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from gatehouse.core.config.models import GatehouseConfig
from gatehouse.core.errors import ConfigError


@dataclass(frozen=True)
class ReadResult:
    ok: bool
    data: Dict[str, Any]
    error: Optional[str] = None


def ensure_dirs(*dirs: str) -> None:
    for d in dirs:
        if d:
            os.makedirs(d, exist_ok=True)


def read_json_file(path: str) -> ReadResult:
    if not os.path.exists(path):
        return ReadResult(ok=False, data={}, error="missing")
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
        if not isinstance(obj, dict):
            return ReadResult(ok=False, data={}, error="not_object")
        return ReadResult(ok=True, data=obj)
    except json.JSONDecodeError as e:
        return ReadResult(ok=False, data={}, error=f"corrupt_json:{e}")
    except OSError as e:
        return ReadResult(ok=False, data={}, error=str(e))


def atomic_write_json(path: str, data: Dict[str, Any]) -> None:
    ensure_dirs(os.path.dirname(path))
    fd, tmp = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=os.path.dirname(path) or ".")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, sort_keys=True)
            f.write("\n")
        os.replace(tmp, path)
    finally:
        try:
            if os.path.exists(tmp):
                os.remove(tmp)
        except OSError:
            pass


def load_config(path: str, *, logger=None) -> GatehouseConfig:
    """
    Load config/gatehouse.json. A missing file yields defaults; a corrupt or
    invalid one is fatal.
    """
    rr = read_json_file(path)
    if not rr.ok:
        if rr.error == "missing":
            if logger is not None:
                logger.warning(f"Missing config {path}; using defaults.")
            return GatehouseConfig()
        raise ConfigError("Configuration file is unreadable.", path=path, error=rr.error)
    try:
        return GatehouseConfig.model_validate(rr.data)
    except PydanticValidationError as e:
        raise ConfigError("Configuration file is invalid.", path=path, errors=[err.get("msg") for err in e.errors()]) from e


def save_config(path: str, cfg: GatehouseConfig) -> None:
    atomic_write_json(path, cfg.model_dump(by_alias=True))
