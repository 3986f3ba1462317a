import pytest

from packages.scheduling.config import DEFAULT_DB_PATH, load_settings


def test_load_settings_defaults(monkeypatch):
    for name in (
        "REMINDERS_TIMEZONE",
        "REMINDERS_POLL_SECONDS",
        "REMINDERS_SCHEDULER_ENABLED",
        "REMINDERS_DB_PATH",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.timezone == "America/Los_Angeles"
    assert settings.poll_seconds == 60
    assert settings.scheduler_enabled is True
    assert settings.db_path == DEFAULT_DB_PATH


def test_load_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("REMINDERS_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("REMINDERS_POLL_SECONDS", "30")
    monkeypatch.setenv("REMINDERS_SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("REMINDERS_DB_PATH", str(tmp_path / "r.db"))

    settings = load_settings()

    assert settings.timezone == "Europe/Berlin"
    assert settings.poll_seconds == 30
    assert settings.scheduler_enabled is False
    assert settings.db_path == str(tmp_path / "r.db")
    assert load_settings(db_path="other.db").db_path == "other.db"


def test_load_settings_rejects_bad_values(monkeypatch):
    monkeypatch.setenv("REMINDERS_TIMEZONE", "Not/AZone")
    with pytest.raises(ValueError):
        load_settings()

    monkeypatch.setenv("REMINDERS_TIMEZONE", "UTC")
    monkeypatch.setenv("REMINDERS_POLL_SECONDS", "0")
    with pytest.raises(ValueError):
        load_settings()
