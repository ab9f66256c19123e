"""
Unit tests for config.py: the production guard and the config selector.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from authcore.config import (
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    config_by_name,
    _database_url,
    _ttl_seconds,
    validate_production_config,
)


def _app(**overrides):
    config = {
        "SQLALCHEMY_DATABASE_URI": "postgresql://db/authcore",
        "SECRET_KEY": "s" * 32,
        "JWT_SECRET_KEY": "a" * 32,
        "JWT_REFRESH_SECRET_KEY": "r" * 32,
        "REVOCATION_BACKEND": "redis",
    }
    config.update(overrides)
    return SimpleNamespace(config=config)


def test_valid_production_config_passes():
    validate_production_config(_app())


@pytest.mark.parametrize("overrides, fragment", [
    ({"SQLALCHEMY_DATABASE_URI": ""}, "DATABASE_URL"),
    ({"SECRET_KEY": "change-me-in-production"}, "SECRET_KEY"),
    ({"JWT_SECRET_KEY": "change-me-in-production"}, "JWT_SECRET_KEY"),
    ({"JWT_REFRESH_SECRET_KEY": "change-me-too-in-production"}, "JWT_REFRESH_SECRET_KEY"),
    ({"JWT_REFRESH_SECRET_KEY": "a" * 32}, "must be different"),
    ({"REVOCATION_BACKEND": "memory"}, "REVOCATION_BACKEND"),
])
def test_production_guard_rejects_insecure_values(overrides, fragment):
    with pytest.raises(ValueError, match=fragment):
        validate_production_config(_app(**overrides))


def test_selector_maps_names_to_classes():
    assert config_by_name["development"] is DevelopmentConfig
    assert config_by_name["testing"] is TestingConfig
    assert config_by_name["production"] is ProductionConfig


def test_testing_config_uses_distinct_secrets_and_memory_store():
    assert TestingConfig.JWT_SECRET_KEY != TestingConfig.JWT_REFRESH_SECRET_KEY
    assert TestingConfig.REVOCATION_BACKEND == "memory"
    assert TestingConfig.BCRYPT_LOG_ROUNDS == 4
    assert TestingConfig.JWT_ACCESS_TOKEN_EXPIRES < TestingConfig.JWT_REFRESH_TOKEN_EXPIRES


def test_all_problems_are_reported_together():
    with pytest.raises(ValueError) as exc_info:
        validate_production_config(_app(SQLALCHEMY_DATABASE_URI="", REVOCATION_BACKEND="memory"))
    message = str(exc_info.value)
    assert "DATABASE_URL" in message
    assert "REVOCATION_BACKEND" in message


class TestTtlSeconds:

    def test_seconds_variable_wins(self, monkeypatch):
        monkeypatch.setenv("AC_TTL", "42")
        monkeypatch.setenv("AC_TTL_MINUTES", "5")
        assert _ttl_seconds("AC_TTL", "AC_TTL_MINUTES", 60, 900) == 42

    def test_alias_is_scaled(self, monkeypatch):
        monkeypatch.delenv("AC_TTL", raising=False)
        monkeypatch.setenv("AC_TTL_MINUTES", "5")
        assert _ttl_seconds("AC_TTL", "AC_TTL_MINUTES", 60, 900) == 300

    def test_unparseable_value_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("AC_TTL", "soon")
        monkeypatch.delenv("AC_TTL_MINUTES", raising=False)
        assert _ttl_seconds("AC_TTL", "AC_TTL_MINUTES", 60, 900) == 900


def test_database_url_normalises_postgres_scheme(monkeypatch):
    monkeypatch.setenv("AC_DB", "postgres://u:p@host/db")
    assert _database_url("AC_DB") == "postgresql://u:p@host/db"
