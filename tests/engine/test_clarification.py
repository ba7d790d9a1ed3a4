"""
Tests for the clarification policy and question texts.
"""

from onboarding.clarification import (
    CLARIFICATION_PROMPTS,
    CLOSING_MESSAGE,
    EXAMPLE_ANSWERS,
    ClarificationPolicy,
    Decision,
    clarification_text,
    question_text,
)
from onboarding.sequencer import is_skipped_system
from onboarding.state import (
    AGE_QUESTION,
    LOCATION_QUESTION,
    NO_QUESTION,
    USAGE_PATTERN_QUESTION,
    OnboardingQuestion,
    QuestionKind,
    SystemType,
)

COOLING = OnboardingQuestion.system(SystemType.COOLING)


class TestQuestionText:

    def test_every_asked_system_has_text(self):
        for system_type in SystemType:
            if is_skipped_system(system_type):
                continue
            text = question_text(OnboardingQuestion.system(system_type))
            assert text.endswith("?")

    def test_terminal_question_is_closing(self):
        assert question_text(NO_QUESTION) == CLOSING_MESSAGE

    def test_location_prompt_mentions_zip(self):
        assert "ZIP" in question_text(LOCATION_QUESTION)


class TestClarificationText:

    def test_first_miss_is_short(self):
        assert clarification_text(AGE_QUESTION, 1) == CLARIFICATION_PROMPTS[QuestionKind.AGE]

    def test_repeat_miss_restates_question_with_example(self):
        text = clarification_text(AGE_QUESTION, 2)
        assert text.startswith(CLARIFICATION_PROMPTS[QuestionKind.AGE])
        assert question_text(AGE_QUESTION) in text
        assert EXAMPLE_ANSWERS[QuestionKind.AGE] in text

    def test_system_clarification_asks_for_yes_or_no(self):
        assert "yes or no" in clarification_text(COOLING, 1)


class TestClarificationPolicy:

    def test_success_advances_with_value(self):
        policy = ClarificationPolicy()
        evaluation = policy.evaluate(AGE_QUESTION, "built in 2000", current_year=2026)
        assert evaluation.decision == Decision.ADVANCE
        assert evaluation.value == 26
        assert evaluation.succeeded

    def test_false_answer_counts_as_success(self):
        evaluation = ClarificationPolicy().evaluate(COOLING, "nah")
        assert evaluation.decision == Decision.ADVANCE
        assert evaluation.value is False

    def test_miss_clarifies_and_counts(self):
        policy = ClarificationPolicy()
        first = policy.evaluate(LOCATION_QUESTION, "somewhere upstate")
        second = policy.evaluate(LOCATION_QUESTION, "near the lake")
        assert first.decision == second.decision == Decision.CLARIFY
        assert (first.attempt, second.attempt) == (1, 2)
        assert policy.misses(LOCATION_QUESTION) == 2

    def test_success_resets_misses(self):
        policy = ClarificationPolicy()
        policy.evaluate(AGE_QUESTION, "old")
        policy.evaluate(AGE_QUESTION, "40 years old")
        assert policy.misses(AGE_QUESTION) == 0

    def test_required_questions_always_clarify(self):
        policy = ClarificationPolicy()
        decisions = [policy.evaluate(USAGE_PATTERN_QUESTION, "depends").decision for _ in range(5)]
        assert decisions == [Decision.CLARIFY] * 5

    def test_system_question_keeps_clarifying(self):
        policy = ClarificationPolicy()
        evaluations = [policy.evaluate(COOLING, "maybe") for _ in range(4)]

        assert [e.decision for e in evaluations] == [Decision.CLARIFY] * 4
        assert [e.attempt for e in evaluations] == [1, 2, 3, 4]
        assert policy.misses(COOLING) == 4
        # Later attempts restate the question with an example answer
        assert EXAMPLE_ANSWERS[QuestionKind.SYSTEM] in clarification_text(COOLING, evaluations[-1].attempt)

    def test_misses_tracked_per_question(self):
        policy = ClarificationPolicy()
        policy.evaluate(COOLING, "hmm")
        assert policy.misses(OnboardingQuestion.system(SystemType.HEATING)) == 0

    def test_reset(self):
        policy = ClarificationPolicy()
        policy.evaluate(AGE_QUESTION, "old")
        policy.reset()
        assert policy.misses(AGE_QUESTION) == 0
