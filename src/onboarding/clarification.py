"""
Clarification Policy.

After each reply, decides whether extraction succeeded for the active
question. A miss is answered with a fixed, question-specific
clarification instead of assistant phrasing; the sequencer does not
advance. Repeated misses re-present the question with an example so the
conversation never loops on a vague prompt.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .extractors import extract_age, extract_location, extract_usage_pattern, extract_yes_no
from .state import OnboardingQuestion, QuestionKind, SystemType

logger = logging.getLogger(__name__)


# =============================================================================
# Fixed Prompts
# =============================================================================

WELCOME_MESSAGE = (
    "Welcome to Upstate Home Copilot! Let's get to know your second home. "
    "I'll ask you a few quick questions to set everything up."
)

CLOSING_MESSAGE = (
    "That's everything I need for now. Your house profile is set up, and "
    "I'll use it to suggest seasonal tasks and keep an eye on risks. "
    "Ask me anything about the house whenever you like."
)

SYSTEM_QUESTIONS: dict[SystemType, str] = {
    SystemType.HEATING: "Does the house have a heating system, like a furnace, boiler, or heat pump?",
    SystemType.COOLING: "Does the house have air conditioning or another cooling system?",
    SystemType.WATER: "Does the house have its own water supply, like a well or a water heater you look after?",
    SystemType.POWER: "Do you have a backup power source, like a generator or solar panels?",
    SystemType.WASTE: "Does the house have a septic system or other on-site waste system?",
    SystemType.LANDSCAPING: "Is there landscaping or a yard that needs regular care?",
    SystemType.SECURITY: "Does the house have a security or alarm system?",
}

QUESTION_PROMPTS: dict[QuestionKind, str] = {
    QuestionKind.LOCATION: "Where is the house? Please share the street address, city, state, and ZIP code.",
    QuestionKind.AGE: "How old is the house? The year it was built works too.",
    QuestionKind.USAGE_PATTERN: (
        "How often do you use the house: daily, weekly, biweekly, monthly, seasonally, or rarely?"
    ),
}

CLARIFICATION_PROMPTS: dict[QuestionKind, str] = {
    QuestionKind.LOCATION: (
        "Sorry, I couldn't quite catch the address. Could you give it as "
        "street, city, state and ZIP?"
    ),
    QuestionKind.AGE: (
        "I didn't catch the age of the house. How many years old is it, "
        "or what year was it built?"
    ),
    QuestionKind.SYSTEM: "Sorry, I didn't catch that. Could you answer yes or no?",
    QuestionKind.USAGE_PATTERN: (
        "I didn't catch how often you visit. Is it daily, weekly, biweekly, "
        "monthly, seasonally, or rarely?"
    ),
}

EXAMPLE_ANSWERS: dict[QuestionKind, str] = {
    QuestionKind.LOCATION: "For example: 123 Main St, Hudson, NY 12534",
    QuestionKind.AGE: "For example: \"built in 1978\" or \"45 years old\"",
    QuestionKind.SYSTEM: "Just \"yes\" or \"no\" is perfect.",
    QuestionKind.USAGE_PATTERN: "For example: \"monthly\" or \"seasonally in the summer\"",
}


def question_text(question: OnboardingQuestion) -> str:
    """Templated text for a question. Also the fallback when phrasing fails."""
    if question.kind == QuestionKind.SYSTEM:
        return SYSTEM_QUESTIONS.get(
            question.system_type,
            f"Does the house have {question.system_type.value.lower()}?",
        )
    if question.kind == QuestionKind.NONE:
        return CLOSING_MESSAGE
    return QUESTION_PROMPTS[question.kind]


def clarification_text(question: OnboardingQuestion, attempt: int) -> str:
    """
    Clarification for the attempt-th consecutive miss (1-based).

    The first miss gets the short clarification; later misses restate the
    question in full with an example answer.
    """
    prompt = CLARIFICATION_PROMPTS[question.kind]
    if attempt <= 1:
        return prompt
    return f"{prompt}\n\n{question_text(question)} {EXAMPLE_ANSWERS[question.kind]}"


# =============================================================================
# Policy
# =============================================================================


class Decision(Enum):
    ADVANCE = "advance"          # Extraction succeeded
    CLARIFY = "clarify"          # Re-ask the same question


@dataclass
class Evaluation:
    """Result of checking a reply against the active question."""
    question: OnboardingQuestion
    decision: Decision
    value: Any = None
    attempt: int = 0

    @property
    def succeeded(self) -> bool:
        return self.decision == Decision.ADVANCE


def extract_for(question: OnboardingQuestion, text: str, current_year: int | None = None) -> Any:
    """Run the extractor for the question's kind. None means no parse."""
    kind = question.kind
    if kind == QuestionKind.LOCATION:
        return extract_location(text)
    if kind == QuestionKind.AGE:
        return extract_age(text, current_year=current_year)
    if kind == QuestionKind.SYSTEM:
        return extract_yes_no(text)
    if kind == QuestionKind.USAGE_PATTERN:
        return extract_usage_pattern(text)
    return None


class ClarificationPolicy:
    """
    Tracks consecutive misses per question.

    Every question is re-asked until it is answered; the miss count only
    picks the wording of the clarification.
    """

    def __init__(self):
        self._misses: dict[OnboardingQuestion, int] = {}

    def evaluate(
        self,
        question: OnboardingQuestion,
        text: str,
        current_year: int | None = None,
    ) -> Evaluation:
        value = extract_for(question, text, current_year=current_year)
        if value is not None:
            self._misses.pop(question, None)
            return Evaluation(question, Decision.ADVANCE, value=value)

        misses = self._misses.get(question, 0) + 1
        self._misses[question] = misses
        logger.debug(f"No {question} in reply (miss {misses})")
        return Evaluation(question, Decision.CLARIFY, attempt=misses)

    def misses(self, question: OnboardingQuestion) -> int:
        return self._misses.get(question, 0)

    def reset(self) -> None:
        self._misses.clear()
