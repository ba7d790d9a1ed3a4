"""
Upstate Home Copilot Onboarding.

Conversational intake for a new property. Asks a fixed sequence of
questions, extracts structured attributes from free-text replies, and
builds the property record incrementally as answers arrive.

Pieces:
1. Extractors - deterministic text -> value parsers
2. Sequencer - which question comes next
3. Clarification - what to say when a reply can't be parsed
4. Transcript - local + remote message reconciliation
5. Record builder - create-once, save-many property record
6. Dialogue - the orchestrator tying it all together
"""

from .dialogue import DialogueState, OnboardingDialogue, TurnResult
from .state import (
    Location,
    OnboardingProgress,
    OnboardingQuestion,
    QuestionKind,
    SystemPresence,
    SystemType,
    TranscriptMessage,
    UsagePattern,
)

__all__ = [
    "OnboardingDialogue",
    "DialogueState",
    "TurnResult",
    "OnboardingProgress",
    "OnboardingQuestion",
    "QuestionKind",
    "Location",
    "SystemPresence",
    "SystemType",
    "UsagePattern",
    "TranscriptMessage",
]
