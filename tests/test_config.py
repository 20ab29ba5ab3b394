from __future__ import annotations

import copy
from decimal import Decimal

import pytest

from conftest import TEST_CONFIG
from garagedesk.config import ConfigError, config_from_dict, load_config


def _data(**overrides):
    data = copy.deepcopy(TEST_CONFIG)
    for section, values in overrides.items():
        data[section].update(values)
    return data


def test_defaults_and_types():
    cfg = config_from_dict(_data())
    assert cfg.environment == "production"
    assert cfg.is_development is False
    assert cfg.log_level == "DEBUG"
    assert cfg.db.port == 5432
    assert cfg.db.pool_min == 2
    assert cfg.auth.jwt_algorithm == "HS256"
    assert cfg.business.default_tax_rate == Decimal("16")
    assert cfg.business.max_page_size == 50
    assert cfg.business.default_reorder_level == 5


def test_conninfo():
    cfg = config_from_dict(_data())
    assert "dbname=garagedesk_test" in cfg.db.conninfo
    assert "user=garagedesk" in cfg.db.conninfo


def test_environment_overrides_secrets():
    cfg = config_from_dict(
        _data(), env={"GARAGEDESK_DB_PASSWORD": "from-env", "GARAGEDESK_JWT_SECRET": "env-secret"}
    )
    assert cfg.db.password == "from-env"
    assert cfg.auth.jwt_secret == "env-secret"


def test_missing_section():
    data = _data()
    del data["db"]
    with pytest.raises(ConfigError, match="Missing config key"):
        config_from_dict(data)


def test_missing_jwt_secret():
    data = _data()
    data["auth"] = {}
    with pytest.raises(ConfigError, match="jwt_secret"):
        config_from_dict(data)


def test_unknown_environment():
    with pytest.raises(ConfigError, match="Unknown environment"):
        config_from_dict(_data(app={"environment": "staging"}))


def test_bad_pool_sizes():
    with pytest.raises(ConfigError):
        config_from_dict(_data(db={"pool_min": 5, "pool_max": 2}))


def test_bad_number():
    with pytest.raises(ConfigError, match="Invalid config values"):
        config_from_dict(_data(db={"port": "not-a-port"}))


def test_load_config_from_file(tmp_path, monkeypatch):
    monkeypatch.delenv("GARAGEDESK_JWT_SECRET", raising=False)
    monkeypatch.delenv("GARAGEDESK_DB_PASSWORD", raising=False)
    path = tmp_path / "config.toml"
    path.write_text(
        """
[app]
name = "Test Garage"
environment = "development"

[db]
host = "db"
name = "garage"
user = "garage"
password = "pw"

[auth]
jwt_secret = "s3cret"
""",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.name == "Test Garage"
    assert cfg.is_development
    assert cfg.db.host == "db"


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.toml")
