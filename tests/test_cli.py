"""
Tests for the copilot CLI.
"""

from unittest.mock import patch

from typer.testing import CliRunner

from copilot import __version__
from copilot.config import CopilotSettings
from copilot.db.memory import InMemoryPropertyStore
from copilot.main import _build_assistant, _build_store, app
from onboarding.sequencer import is_skipped_system
from onboarding.state import SYSTEM_TYPES

runner = CliRunner()


def _settings(**overrides) -> CopilotSettings:
    values = {"openai_api_key": None, "supabase_url": None, "supabase_anon_key": None, **overrides}
    return CopilotSettings(_env_file=None, **values)


class TestCommands:

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_health_without_services(self):
        with patch("copilot.config.get_settings", return_value=_settings()):
            result = runner.invoke(app, ["health"])
        assert result.exit_code == 0
        assert "All checks passed" in result.output

    def test_health_rejects_bad_supabase_url(self):
        bad = _settings(supabase_url="http://insecure", supabase_anon_key="anon")
        with patch("copilot.config.get_settings", return_value=bad):
            result = runner.invoke(app, ["health"])
        assert result.exit_code == 1

    def test_offline_onboarding_session(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        replies = "\n".join([
            "123 Main St, Springfield, IL 62704",
            "built in 2000",
            "profile",
            "exit",
        ]) + "\n"

        result = runner.invoke(app, ["onboard", "--offline"], input=replies)

        assert result.exit_code == 0
        assert "Springfield" in result.output
        asked_systems = [t for t in SYSTEM_TYPES if not is_skipped_system(t)]
        assert f"Questions left: {len(asked_systems) + 1}" in result.output
        assert "Goodbye" in result.output


class TestWiring:

    def test_offline_uses_memory_store(self):
        assert isinstance(_build_store(offline=True), InMemoryPropertyStore)

    def test_missing_supabase_falls_back_to_memory_store(self):
        with patch("copilot.config.settings", _settings()):
            assert isinstance(_build_store(offline=False), InMemoryPropertyStore)

    def test_no_assistant_offline_or_without_key(self):
        assert _build_assistant(offline=True) is None
        with patch("copilot.config.settings", _settings()):
            assert _build_assistant(offline=False) is None

    def test_assistant_with_key(self):
        with patch("copilot.config.settings", _settings(openai_api_key="sk-test")):
            assistant = _build_assistant(offline=False)
        assert assistant is not None
