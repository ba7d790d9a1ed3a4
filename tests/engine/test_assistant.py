"""
Tests for assistant prompt building and the OpenAI-backed assistant.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from onboarding.assistant import (
    MAX_HISTORY,
    PERSONA,
    AssistantError,
    AssistantService,
    OpenAIAssistant,
    build_system_prompt,
    property_context,
    to_chat_messages,
)
from onboarding.clarification import question_text
from onboarding.state import (
    AGE_QUESTION,
    Location,
    MessageRole,
    OccupancyFrequency,
    OnboardingProgress,
    SystemPresence,
    SystemType,
    TranscriptMessage,
    UsagePattern,
)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


def _transcript(n: int) -> list[TranscriptMessage]:
    roles = [MessageRole.USER, MessageRole.ASSISTANT]
    return [
        TranscriptMessage(role=roles[i % 2], text=f"message {i}", timestamp=T0 + timedelta(seconds=i))
        for i in range(n)
    ]


class TestPropertyContext:

    def test_no_progress(self):
        assert "No house profile" in property_context(None)

    def test_empty_progress(self):
        assert property_context(OnboardingProgress()) == "House profile is being built."

    def test_full_progress(self):
        progress = OnboardingProgress(
            location=Location("123 Main St", "Springfield", "IL", "62704"),
            age=80,
            usage_pattern=UsagePattern(OccupancyFrequency.RARELY),
        )
        progress.add_system(SystemPresence(SystemType.HEATING))

        context = property_context(progress)

        assert "Location: 123 Main St, Springfield, IL 62704" in context
        assert "Age: 80 years" in context
        assert "Systems: Heating" in context
        assert "Usage: Rarely" in context
        assert "Low Occupancy (Medium)" in context
        assert "Old Systems (Medium)" in context


class TestPrompts:

    def test_system_prompt_carries_persona_and_question(self):
        prompt = build_system_prompt(OnboardingProgress(), AGE_QUESTION)
        assert prompt.startswith(PERSONA)
        assert question_text(AGE_QUESTION) in prompt

    def test_chat_messages_capped_and_mapped(self):
        messages = to_chat_messages(_transcript(MAX_HISTORY + 5))
        assert len(messages) == MAX_HISTORY
        assert messages[-1]["content"] == f"message {MAX_HISTORY + 4}"
        assert {m["role"] for m in messages} == {"user", "assistant"}

    def test_system_messages_dropped(self):
        transcript = [TranscriptMessage(role=MessageRole.SYSTEM, text="note", timestamp=T0)]
        assert to_chat_messages(transcript) == []


class TestOpenAIAssistant:

    def test_is_an_assistant_service(self):
        assert isinstance(OpenAIAssistant(), AssistantService)

    def test_complete_calls_llm(self):
        assistant = OpenAIAssistant(model="gpt-test", temperature=0.2)
        with patch("copilot.llm.client.call_llm_chat", new=AsyncMock(return_value="How old is it?")) as mock_call:
            reply = _run(assistant.complete(_transcript(2), "system"))

        assert reply == "How old is it?"
        kwargs = mock_call.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["temperature"] == 0.2
        assert kwargs["system_prompt"] == "system"
        assert kwargs["node"] == "onboarding_phrasing"
        assert len(kwargs["messages"]) == 2
        assert kwargs["context"] == {"history": "2 of 2 messages"}

    def test_question_passed_to_prompt_log(self):
        with patch("copilot.llm.client.call_llm_chat", new=AsyncMock(return_value="How old is it?")) as mock_call:
            _run(OpenAIAssistant().complete(_transcript(MAX_HISTORY + 5), "system", question=AGE_QUESTION))

        context = mock_call.call_args.kwargs["context"]
        assert context["question"] == str(AGE_QUESTION)
        assert context["history"] == f"{MAX_HISTORY} of {MAX_HISTORY + 5} messages"

    def test_failure_wrapped(self):
        with patch("copilot.llm.client.call_llm_chat", new=AsyncMock(side_effect=TimeoutError("slow"))):
            with pytest.raises(AssistantError):
                _run(OpenAIAssistant().complete([], "system"))

    def test_empty_reply_is_an_error(self):
        with patch("copilot.llm.client.call_llm_chat", new=AsyncMock(return_value="")):
            with pytest.raises(AssistantError):
                _run(OpenAIAssistant().complete([], "system"))
