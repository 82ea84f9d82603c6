"""Tests for environment configuration and service wiring."""

from pathlib import Path

from gamerecon.config import get_settings
from gamerecon.services import create_services


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "GAMERECON_DB_PATH",
            "ARCHIVE_DAILY_QUOTA",
            "SCHEDULER_ENABLED",
            "RECONCILE_LOOKBACK_DAYS",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = get_settings()
        assert settings.db_path == Path("./gamerecon.db")
        assert settings.fetch.daily_quota is None
        assert settings.scheduler.enabled is True
        assert settings.reconcile.lookback_days == 7

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("GAMERECON_DB_PATH", "/tmp/other.db")
        monkeypatch.setenv("GAMERECON_LOG_LEVEL", "debug")
        monkeypatch.setenv("ARCHIVE_DAILY_QUOTA", "500")
        monkeypatch.setenv("ARCHIVE_MAX_RETRIES", "5")
        monkeypatch.setenv("SCHEDULER_ENABLED", "false")
        monkeypatch.setenv("SCHEDULER_INTERVAL_MINUTES", "30")

        settings = get_settings()

        assert settings.db_path == Path("/tmp/other.db")
        assert settings.log_level == "DEBUG"
        assert settings.fetch.daily_quota == 500
        assert settings.fetch.max_retries == 5
        assert settings.scheduler.enabled is False
        assert settings.scheduler.interval_minutes == 30


class TestCreateServices:
    def test_wiring_shares_fetcher(self, monkeypatch, db_path):
        monkeypatch.setenv("GAMERECON_DB_PATH", str(db_path))
        services = create_services(get_settings())
        try:
            assert services.settings.db_path == db_path
            assert services.fetcher.max_retries == 3
            with services.db_factory() as conn:
                assert conn.execute("SELECT COUNT(*) FROM game_id_mappings").fetchone()[0] == 0
        finally:
            services.close()
