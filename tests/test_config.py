from __future__ import annotations

from approval_rules.config import Settings


def test_defaults() -> None:
    settings = Settings()
    assert settings.pending_ttl_seconds == 300
    assert settings.sweep_interval_seconds == 60
    assert settings.suggestion_limit == 5


def test_env_prefix(monkeypatch) -> None:
    monkeypatch.setenv("APPROVAL_RULES_PENDING_TTL_SECONDS", "30")
    monkeypatch.setenv("APPROVAL_RULES_DATABASE_URL", "sqlite://")
    settings = Settings()
    assert settings.pending_ttl_seconds == 30
    assert settings.database_url == "sqlite://"
