"""Tests for the background task runner, settings and AppFactory wiring."""

import asyncio
import logging

import pytest

from relaychat.application.session.background import BackgroundTaskRunner
from relaychat.infrastructure.app_factory import AppFactory
from relaychat.modules.chat_history import ConversationRepository
from relaychat.modules.config import AppSettings, ConfigManager


class TestBackgroundTaskRunner:
    @pytest.mark.asyncio
    async def test_spawned_task_runs_without_join(self):
        runner = BackgroundTaskRunner()
        done = asyncio.Event()

        async def work():
            done.set()

        runner.spawn(work(), name="work")
        await asyncio.wait_for(done.wait(), timeout=1)
        await runner.drain()
        assert not runner.pending

    @pytest.mark.asyncio
    async def test_failures_are_logged_not_raised(self, caplog):
        runner = BackgroundTaskRunner()

        async def boom():
            raise RuntimeError("title backend exploded")

        with caplog.at_level(logging.WARNING, logger="relaychat.application.session.background"):
            runner.spawn(boom(), name="boom")
            await runner.drain()
        assert "title backend exploded" in caplog.text
        assert not runner.pending

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        runner = BackgroundTaskRunner()
        runner.spawn(asyncio.sleep(10), name="sleeper")
        runner.cancel_all()
        await runner.drain()
        assert not runner.pending


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("LOCAL_BACKEND_URL", "TITLE_MODEL", "ROUTED_MODEL", "DEFAULT_OWNER"):
            monkeypatch.delenv(name, raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.local_backend_url == "http://localhost:11434"
        assert settings.title_model == "gemma3:4b"
        assert settings.routed_model == "openai/gpt-3.5-turbo"
        assert settings.default_owner == "default-user"
        assert settings.max_message_length == 200_000

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("LOCAL_BACKEND_URL", "http://gpu-box:11434/")
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-env")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = AppSettings(_env_file=None)
        assert settings.local_backend_url == "http://gpu-box:11434"
        assert settings.routed_api_key == "sk-env"
        assert settings.log_level == "DEBUG"


class TestAppFactory:
    def test_lifecycle(self, settings):
        factory = AppFactory(ConfigManager(settings))
        assert not factory.is_open
        with pytest.raises(RuntimeError):
            factory.get_conversation_repository()

        factory.open()
        try:
            assert isinstance(factory.get_conversation_repository(), ConversationRepository)
            assert factory.open() is factory
        finally:
            factory.close()
        assert not factory.is_open
        factory.close()

    def test_wiring_follows_settings(self, settings):
        factory = AppFactory(ConfigManager(settings))
        assert factory.get_title_generator().model == settings.title_model
        assert factory.routed_backend.api_key == "test-routed-key"
        assert factory.get_chat_proxy().local is factory.local_backend
        assert factory.get_title_generator().backend is factory.local_backend
