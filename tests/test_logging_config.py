"""Tests for logging configuration."""

import json
import logging

from logscope.logging_config import JSONFormatter, build_logging_config


def _record(**extra):
    record = logging.LogRecord(
        name="logscope.storage",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="Event store %s",
        args=("initialized",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "logscope.storage"
        assert data["message"] == "Event store initialized"
        assert "timestamp" in data
        assert "context" not in data

    def test_context(self):
        data = json.loads(
            JSONFormatter().format(_record(context={"db_path": "/tmp/x", "n": 3}))
        )
        assert data["context"] == {"db_path": "/tmp/x", "n": 3}

    def test_unserializable_context(self):
        data = json.loads(JSONFormatter().format(_record(context={"obj": object()})))
        assert data["context"]["obj"].startswith("<object")

    async def test_task_name(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert "task" in data


class TestBuildLoggingConfig:
    def test_console_only(self):
        config = build_logging_config("debug", None)

        assert config["root"]["level"] == "DEBUG"
        assert config["root"]["handlers"] == ["console"]
        assert "file" not in config["handlers"]

    def test_with_file(self, tmp_path):
        log_file = str(tmp_path / "logscope.log")
        config = build_logging_config("INFO", log_file)

        assert config["root"]["handlers"] == ["console", "file"]
        assert config["handlers"]["file"]["filename"] == log_file
        assert config["loggers"]["aiosqlite"]["level"] == "WARNING"
