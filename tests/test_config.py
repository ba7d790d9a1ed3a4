"""
Tests for settings and the session context.
"""

import asyncio

from copilot.config import CopilotSettings
from copilot.db.request_context import (
    clear_session_context,
    get_session_context,
    set_session_context,
)


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("OPENAI_API_KEY", "SUPABASE_URL", "SUPABASE_ANON_KEY"):
            monkeypatch.delenv(name, raising=False)

        settings = CopilotSettings(_env_file=None)

        assert settings.is_development
        assert not settings.has_openai
        assert not settings.has_supabase
        assert settings.assistant_phrasing
        assert settings.assistant_timeout_seconds == 8.0
        assert settings.message_history_limit == 50

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        monkeypatch.setenv("COPILOT_ENV", "production")
        monkeypatch.setenv("ASSISTANT_TIMEOUT_SECONDS", "3.5")

        settings = CopilotSettings(_env_file=None)

        assert settings.has_openai
        assert settings.has_supabase
        assert settings.is_production
        assert settings.assistant_timeout_seconds == 3.5


class TestSessionContext:

    def test_unset_context_cannot_persist(self):
        clear_session_context()
        session = get_session_context()
        assert session.user_id is None
        assert not session.can_persist
        assert get_session_context() is session

    def test_set_and_clear(self):
        session = set_session_context(user_id="user-1")
        assert get_session_context() is session
        assert session.can_persist
        clear_session_context()
        assert get_session_context() is not session

    def test_context_is_per_task(self):
        async def worker(user_id):
            set_session_context(user_id=user_id)
            await asyncio.sleep(0)
            return get_session_context().user_id

        async def scenario():
            return await asyncio.gather(worker("a"), worker("b"))

        assert asyncio.run(scenario()) == ["a", "b"]
