"""
Conversational Assistant.

Optional cosmetic layer over the deterministic dialogue: the assistant
rewords the next templated question in context. It never decides what to
ask; the sequencer does. Any failure falls back to the templated text.
"""

import logging
from typing import Protocol, runtime_checkable

from .clarification import question_text
from .record_builder import derive_risk_factors
from .state import MessageRole, OnboardingProgress, OnboardingQuestion, TranscriptMessage

logger = logging.getLogger(__name__)

# History cap: 20 messages = 10 user/assistant exchanges
MAX_HISTORY = 20

PERSONA = """You are Upstate Home Copilot, an AI assistant that helps owners manage their second homes.

Your role:
- Assist, suggest, draft, and remember
- Never pretend to be a contractor or property manager
- Be friendly and conversational
- Be comfortable with partial knowledge and uncertainty
- Ask one question at a time"""

ONBOARDING_INSTRUCTIONS = """You are setting up the owner's house profile.

Briefly acknowledge the owner's last answer if there is one, then ask exactly
this question, keeping its meaning unchanged:

"{question}"

Do not ask anything else. Keep it to two short sentences."""


class AssistantError(RuntimeError):
    """The assistant service failed or returned nothing usable."""


@runtime_checkable
class AssistantService(Protocol):
    """External conversational assistant."""

    async def complete(
        self,
        transcript: list[TranscriptMessage],
        system_prompt: str,
        question: OnboardingQuestion | None = None,
    ) -> str:
        """Reply text for the transcript. May raise on network/auth failure."""
        ...


# =============================================================================
# Prompt Building
# =============================================================================


def property_context(progress: OnboardingProgress | None) -> str:
    """What we know about the house, formatted for the system prompt."""
    if progress is None:
        return "No house profile available yet. Ask the user questions to learn about their house."

    lines = []
    if progress.name:
        lines.append(f"- Name: {progress.name}")
    if progress.location:
        lines.append(f"- Location: {progress.location.display()}")
    if progress.age is not None:
        lines.append(f"- Age: {progress.age} years")
    if progress.systems:
        names = ", ".join(t.value for t in progress.systems)
        lines.append(f"- Systems: {names}")
    usage = progress.usage_pattern
    if usage and usage.occupancy_frequency:
        lines.append(f"- Usage: {usage.occupancy_frequency.value}, Seasonal: {usage.seasonal}")
    risks = derive_risk_factors(progress)
    if risks:
        summary = ", ".join(f"{r.type.value} ({r.severity.value})" for r in risks)
        lines.append(f"- Risk Factors: {summary}")

    if not lines:
        return "House profile is being built."
    return "House Profile:\n" + "\n".join(lines)


def build_system_prompt(progress: OnboardingProgress | None, question: OnboardingQuestion) -> str:
    """System prompt asking the assistant to phrase the next question."""
    return "\n\n".join([
        PERSONA,
        property_context(progress),
        ONBOARDING_INSTRUCTIONS.format(question=question_text(question)),
    ])


def to_chat_messages(transcript: list[TranscriptMessage]) -> list[dict[str, str]]:
    """Recent transcript in chat-completion format."""
    recent = transcript[-MAX_HISTORY:]
    return [
        {"role": m.role.value, "content": m.text}
        for m in recent
        if m.role in (MessageRole.USER, MessageRole.ASSISTANT)
    ]


# =============================================================================
# OpenAI Implementation
# =============================================================================


class OpenAIAssistant:
    """AssistantService backed by the OpenAI chat completions API."""

    def __init__(self, model: str | None = None, temperature: float | None = None):
        self.model = model
        self.temperature = temperature

    async def complete(
        self,
        transcript: list[TranscriptMessage],
        system_prompt: str,
        question: OnboardingQuestion | None = None,
    ) -> str:
        from copilot.llm.client import call_llm_chat

        messages = to_chat_messages(transcript)
        context = {"history": f"{len(messages)} of {len(transcript)} messages"}
        if question is not None:
            context["question"] = str(question)

        try:
            reply = await call_llm_chat(
                messages=messages,
                system_prompt=system_prompt,
                model=self.model,
                temperature=self.temperature,
                node="onboarding_phrasing",
                context=context,
            )
        except Exception as e:
            raise AssistantError(f"Assistant call failed: {e}") from e

        if not reply:
            raise AssistantError("Assistant returned an empty reply")
        return reply
