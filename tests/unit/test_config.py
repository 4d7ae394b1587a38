"""Tests for configuration defaults and env overrides."""

from __future__ import annotations

from redwing.core.config import AppSettings, EscalationConfig, RedisConfig, TransportConfig


def test_default_settings():
    settings = AppSettings()
    assert settings.environment == "dev"
    assert settings.backend == "memory"
    assert settings.log_format == "json"


def test_escalation_config_defaults():
    config = EscalationConfig()
    assert config.focus_ttl_seconds == 86400
    assert config.group_suffix == "@g.us"
    assert config.group_origin_agents == ["GA"]
    assert config.audit_instruction_max_chars == 500


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("REDWING_ESCALATION_FOCUS_TTL_SECONDS", "60")
    monkeypatch.setenv("REDWING_REDIS_KEY_PREFIX", "test")
    monkeypatch.setenv("REDWING_TRANSPORT_MAX_ATTEMPTS", "5")
    assert EscalationConfig().focus_ttl_seconds == 60
    assert RedisConfig().key_prefix == "test"
    assert TransportConfig().max_attempts == 5


def test_backend_override(monkeypatch):
    monkeypatch.setenv("REDWING_BACKEND", "aws")
    monkeypatch.setenv("REDWING_LOG_FORMAT", "text")
    settings = AppSettings()
    assert settings.backend == "aws"
    assert settings.log_format == "text"
