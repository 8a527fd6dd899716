"""Tests for engine settings, logging setup and the run log."""

import logging

import pytest
from pydantic import ValidationError

from repo_migrator.config import DEFAULT_OPENAI_MODEL, EngineSettings
from repo_migrator.logging_config import setup_logging
from repo_migrator.models import AgentStatus, LogSeverity
from repo_migrator.orchestrator import MigrationLog


class TestEngineSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("REPO_MIGRATOR_LLM_PROVIDER", raising=False)
        settings = EngineSettings(anthropic_api_key="k")

        assert settings.llm_provider == "auto"
        assert settings.llm_fallback_provider is None
        assert settings.max_retries == 3
        assert settings.openai_model == DEFAULT_OPENAI_MODEL

    def test_conventional_key_names(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "anthropic-from-env")
        monkeypatch.setenv("OPENAI_API_KEY", "openai-from-env")

        settings = EngineSettings()

        assert settings.anthropic_api_key == "anthropic-from-env"
        assert settings.openai_api_key == "openai-from-env"

    def test_prefixed_fields(self, monkeypatch):
        monkeypatch.setenv("REPO_MIGRATOR_MAX_RETRIES", "7")
        monkeypatch.setenv("REPO_MIGRATOR_GENERATION_MODEL", "claude-custom")

        settings = EngineSettings()

        assert settings.max_retries == 7
        assert settings.generation_model == "claude-custom"

    @pytest.mark.parametrize(("raw", "expected"), [(" OpenAI ", "openai"), ("", None), (None, None)])
    def test_fallback_provider_normalized(self, raw, expected):
        assert EngineSettings(llm_fallback_provider=raw).llm_fallback_provider == expected

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            EngineSettings(llm_provider="gemini")

    def test_negative_retries_clamped(self):
        assert EngineSettings(max_retries=-2).max_retries == 0

    def test_from_env_ignores_none_overrides(self, monkeypatch):
        monkeypatch.setenv("REPO_MIGRATOR_MAX_RETRIES", "4")

        settings = EngineSettings.from_env(max_retries=None, llm_provider="anthropic")

        assert settings.max_retries == 4
        assert settings.llm_provider == "anthropic"


class TestSetupLogging:
    def test_sets_root_level_and_quiets_sdks(self):
        root = logging.getLogger()
        previous_level, previous_handlers = root.level, list(root.handlers)
        try:
            setup_logging("debug")

            assert root.level == logging.DEBUG
            assert logging.getLogger("httpx").level == logging.WARNING
            assert logging.getLogger("anthropic").level == logging.WARNING
        finally:
            root.handlers = previous_handlers
            root.setLevel(previous_level)

    def test_unknown_level_defaults_to_info(self):
        root = logging.getLogger()
        previous_level, previous_handlers = root.level, list(root.handlers)
        try:
            setup_logging("chatty")

            assert root.level == logging.INFO
        finally:
            root.handlers = previous_handlers
            root.setLevel(previous_level)


class TestMigrationLog:
    def test_entries_listener_and_mirror(self, caplog):
        received = []
        log = MigrationLog(listener=received.append)

        with caplog.at_level(logging.INFO, logger="repo_migrator.run"):
            log("Running repository analysis...", LogSeverity.INFO, AgentStatus.ANALYZING)
            log("Generation failed", LogSeverity.ERROR, "converting")

        assert [entry.phase for entry in log.entries] == ["analyzing", "converting"]
        assert received == log.entries
        assert log.messages(LogSeverity.ERROR) == ["Generation failed"]
        assert "[analyzing] Running repository analysis..." in caplog.text

    def test_clear(self):
        log = MigrationLog()
        log("hello")
        log.clear()
        assert log.entries == []
