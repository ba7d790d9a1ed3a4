"""
Pytest configuration and fixtures for Upstate Home Copilot tests.
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment before importing copilot modules
os.environ["COPILOT_ENV"] = "development"
os.environ["COPILOT_LOG_PROMPTS"] = "0"

from copilot.db.memory import InMemoryPropertyStore  # noqa: E402
from copilot.db.request_context import SessionContext  # noqa: E402


class TickingClock:
    """Deterministic clock: every call is one second after the previous."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current


class FakeAssistant:
    """AssistantService that records calls and answers from a script."""

    def __init__(self, reply: str = "", error: Exception | None = None, delay: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls: list[tuple[list, str]] = []
        self.questions: list = []

    async def complete(self, transcript, system_prompt, question=None):
        self.calls.append((list(transcript), system_prompt))
        self.questions.append(question)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


class FlakyStore(InMemoryPropertyStore):
    """In-memory store whose writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_create = False
        self.fail_save = False
        self.fail_append = False
        self.save_calls: list[dict] = []

    async def create_record(self, draft):
        if self.fail_create:
            raise ConnectionError("store unreachable")
        return await super().create_record(draft)

    async def save_record(self, record_id, snapshot):
        self.save_calls.append(snapshot)
        if self.fail_save:
            raise ConnectionError("store unreachable")
        await super().save_record(record_id, snapshot)

    async def append_message(self, record_id, message):
        if self.fail_append:
            raise ConnectionError("store unreachable")
        await super().append_message(record_id, message)


@pytest.fixture
def clock():
    """Clock fixed in 2026, ticking one second per reading."""
    return TickingClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def session():
    """A signed-in owner with no record yet."""
    return SessionContext(user_id="user-1")


@pytest.fixture
def fake_assistant():
    """Factory for scripted assistants."""
    return FakeAssistant


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.insert.return_value = mock_table
    mock_table.update.return_value = mock_table
    mock_table.upsert.return_value = mock_table
    mock_table.delete.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.order.return_value = mock_table
    mock_table.limit.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client


@pytest.fixture
def mock_openai():
    """Mock OpenAI client for unit tests."""
    mock_client = MagicMock()

    # Mock chat completions
    mock_completion = MagicMock()
    mock_completion.choices = [MagicMock(message=MagicMock(content="How old is the house?"))]
    mock_client.chat.completions.create = AsyncMock(return_value=mock_completion)

    return mock_client
