"""Tests for configuration, logging, and the exception hierarchy."""

import json

import pytest

from done_backend.config import Config
from done_backend.exceptions import (
    AuthError,
    ConfigurationError,
    DoneError,
    EntityError,
    EntityNotFoundError,
    InfrastructureError,
    KeyNotFoundError,
    StoreError,
    TokenExpiredError,
)
from done_backend.logger import StructuredLogger


class TestConfig:
    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("TABLE_NAME", "done-prod")
        monkeypatch.setenv("FRONTEND_URL", "done.example.test")
        monkeypatch.setenv("JWKS_CACHE_SECONDS", "60")
        monkeypatch.setenv("AWS_REGION", "eu-west-1")

        config = Config.from_environment()

        assert config.require_table() == "done-prod"
        assert config.allowed_origin == "https://done.example.test"
        assert config.jwks_cache_seconds == 60
        assert config.region == "eu-west-1"

    def test_missing_table_name(self, monkeypatch):
        monkeypatch.delenv("TABLE_NAME", raising=False)

        with pytest.raises(ConfigurationError, match="Table name not set"):
            Config.from_environment().require_table()

    def test_unparseable_cache_seconds(self, monkeypatch):
        monkeypatch.setenv("JWKS_CACHE_SECONDS", "5m")

        with pytest.raises(ConfigurationError, match="must be an integer") as exc_info:
            Config.from_environment()
        assert exc_info.value.name == "JWKS_CACHE_SECONDS"

    def test_no_frontend_url(self):
        assert Config().allowed_origin == ""


class TestStructuredLogger:
    def test_emits_json_with_context(self, capsys):
        logger = StructuredLogger("done.test", level="DEBUG")

        logger.info("Task created", user_id="u1", count=2)

        entry = json.loads(capsys.readouterr().out)
        assert entry["level"] == "INFO"
        assert entry["logger"] == "done.test"
        assert entry["message"] == "Task created"
        assert entry["user_id"] == "u1"
        assert entry["count"] == 2

    def test_threshold_from_environment(self, capsys, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        logger = StructuredLogger("done.test")

        logger.info("dropped")
        logger.warning("kept")

        lines = capsys.readouterr().out.strip().splitlines()
        assert [json.loads(line)["message"] for line in lines] == ["kept"]

    def test_exc_info_includes_traceback(self, capsys):
        logger = StructuredLogger("done.test", level="DEBUG")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        entry = json.loads(capsys.readouterr().out)
        assert "ValueError: boom" in entry["exception"]


class TestExceptionHierarchy:
    def test_categories(self):
        assert issubclass(EntityNotFoundError, EntityError)
        assert issubclass(StoreError, InfrastructureError)
        assert issubclass(ConfigurationError, InfrastructureError)
        assert issubclass(TokenExpiredError, AuthError)
        for category in (EntityError, InfrastructureError, AuthError):
            assert issubclass(category, DoneError)

    def test_not_found_message(self):
        error = EntityNotFoundError("task", "u1", "t1")
        assert str(error) == "task not found: t1"
        assert error.ids == ("t1",)

    def test_store_error_message(self):
        error = StoreError("PutItem", "Rate exceeded", code="ThrottlingException")
        assert str(error) == "PutItem failed: ThrottlingException: Rate exceeded"

    def test_key_not_found_message(self):
        assert "k9" in str(KeyNotFoundError("k9"))
