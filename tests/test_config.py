"""Tests for configuration helpers."""

from pathlib import Path

from logscope.config import (
    DEFAULT_DB_PATH,
    DEFAULT_MAX_BUCKETS,
    PROJECT_ROOT,
    Settings,
    resolve_db_path,
)


class TestResolveDbPath:
    def test_default(self):
        assert resolve_db_path(None) == DEFAULT_DB_PATH

    def test_memory(self):
        assert resolve_db_path(":memory:") == ":memory:"

    def test_relative_to_project_root(self):
        assert resolve_db_path("data/other.sqlite") == PROJECT_ROOT / "data" / "other.sqlite"

    def test_absolute(self, tmp_path):
        target = tmp_path / "logs.sqlite"
        assert resolve_db_path(str(target)) == Path(target)


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "DATABASE_URL",
            "LOG_LEVEL",
            "API_PORT",
            "HISTOGRAM_MAX_BUCKETS",
            "RANGE_DEBOUNCE_MS",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()
        assert settings.database_url is None
        assert settings.log_level == "INFO"
        assert settings.api_port == 8000
        assert settings.max_buckets == DEFAULT_MAX_BUCKETS
        assert settings.range_debounce_seconds == 0.2

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "/tmp/events.sqlite")
        monkeypatch.setenv("API_PORT", "9001")
        monkeypatch.setenv("LOGS_PAGE_SIZE", "25")
        monkeypatch.setenv("STATUS_POLL_INTERVAL_MS", "1500")

        settings = Settings.from_env()
        assert settings.database_url == "/tmp/events.sqlite"
        assert settings.api_port == 9001
        assert settings.page_size == 25
        assert settings.status_poll_interval_seconds == 1.5

    def test_cors_origins(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test,")
        assert Settings.from_env().cors_origins == ["http://a.test", "http://b.test"]

    def test_default_cors_origins(self, monkeypatch):
        monkeypatch.delenv("CORS_ORIGINS", raising=False)
        assert Settings.from_env().cors_origins == ["http://localhost:5173", "http://localhost:5174"]
