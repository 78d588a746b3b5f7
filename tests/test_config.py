from __future__ import annotations

import json
import os

import pytest
from pydantic import ValidationError as PydanticValidationError

from gatehouse.core.config.io import load_config, read_json_file, save_config
from gatehouse.core.config.models import GatehouseConfig, SessionConfig
from gatehouse.core.errors import ConfigError


def test_defaults():
    cfg = GatehouseConfig()
    assert cfg.session.gc_maxlifetime == 120
    assert cfg.session.gc_maxlifetime_seconds == 7200
    assert cfg.session.cookie_name == "GHSESSID"
    assert cfg.global_.use_ssl is False


def test_unknown_keys_are_rejected():
    with pytest.raises(PydanticValidationError):
        GatehouseConfig.model_validate({"session": {"gc_maxlifetime": 10, "surprise": True}})


def test_global_section_uses_wire_name():
    cfg = GatehouseConfig.model_validate({"global": {"use_ssl": True}})
    assert cfg.global_.use_ssl is True
    assert cfg.model_dump(by_alias=True)["global"] == {"use_ssl": True}


def test_cookie_params_follow_use_ssl():
    plain = GatehouseConfig().cookie_params()
    assert plain.secure is False
    assert plain.httponly is True
    assert plain.lifetime == 0

    tls = GatehouseConfig.model_validate({"global": {"use_ssl": True}}).cookie_params()
    assert tls.secure is True
    assert GatehouseConfig().cookie_params(secure=True).secure is True


@pytest.mark.parametrize("name", ["", "has space", "semi;colon", "x" * 65])
def test_cookie_name_is_validated(name):
    with pytest.raises(PydanticValidationError):
        SessionConfig(cookie_name=name)


def test_trusted_proxies_are_normalized():
    cfg = SessionConfig(trusted_proxies=["10.0.0.1", "192.168.0.0/16", "::1"])
    assert cfg.trusted_proxies == ["10.0.0.1/32", "192.168.0.0/16", "::1/128"]
    with pytest.raises(PydanticValidationError):
        SessionConfig(trusted_proxies=["not-an-ip"])


def test_session_dir_is_relative_to_root(tmp_path):
    cfg = GatehouseConfig(root_dir=str(tmp_path))
    assert cfg.session_dir() == os.path.join(str(tmp_path), "var", "sessions")
    absolute = GatehouseConfig.model_validate({"session": {"save_path": str(tmp_path / "elsewhere")}})
    assert absolute.session_dir() == str(tmp_path / "elsewhere")


def test_load_missing_file_yields_defaults(tmp_path):
    cfg = load_config(str(tmp_path / "missing.json"))
    assert cfg == GatehouseConfig()


def test_load_corrupt_file_is_fatal(tmp_path):
    p = tmp_path / "gatehouse.json"
    p.write_text("{oops", encoding="utf-8")
    with pytest.raises(ConfigError) as ei:
        load_config(str(p))
    assert ei.value.code == "config_error"
    assert ei.value.recoverable is False


def test_load_invalid_file_is_fatal(tmp_path):
    p = tmp_path / "gatehouse.json"
    p.write_text(json.dumps({"session": {"gc_divisor": 0}}), encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(p))


def test_save_then_load(tmp_path):
    p = str(tmp_path / "config" / "gatehouse.json")
    cfg = GatehouseConfig.model_validate({"global": {"use_ssl": True}, "session": {"gc_maxlifetime": 30}})
    save_config(p, cfg)
    assert read_json_file(p).data["global"] == {"use_ssl": True}
    loaded = load_config(p)
    assert loaded.session.gc_maxlifetime_seconds == 1800
    assert loaded.global_.use_ssl is True


def test_read_json_file_reports_non_object(tmp_path):
    p = tmp_path / "list.json"
    p.write_text("[1, 2]", encoding="utf-8")
    rr = read_json_file(str(p))
    assert rr.ok is False
    assert rr.error == "not_object"
