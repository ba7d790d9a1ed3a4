"""
Tests for the question sequencer and the progress model it reads.
"""

import pytest

from onboarding.sequencer import (
    apply_auto_affirmed,
    is_skipped_system,
    next_question,
    remaining_questions,
)
from onboarding.state import (
    AGE_QUESTION,
    AUTO_AFFIRMED_SYSTEMS,
    LOCATION_QUESTION,
    NO_QUESTION,
    SYSTEM_TYPES,
    USAGE_PATTERN_QUESTION,
    Location,
    OccupancyFrequency,
    OnboardingProgress,
    OnboardingQuestion,
    QuestionKind,
    SystemPresence,
    SystemType,
    UsagePattern,
)

ASKED_SYSTEMS = [
    SystemType.HEATING,
    SystemType.COOLING,
    SystemType.WATER,
    SystemType.POWER,
    SystemType.WASTE,
    SystemType.LANDSCAPING,
    SystemType.SECURITY,
]


def _located(age: int | None = 40) -> OnboardingProgress:
    progress = OnboardingProgress(location=Location("123 Main St", "Springfield", "IL", "62704"))
    progress.age = age
    return progress


def _answer_all_systems(progress: OnboardingProgress) -> list[OnboardingQuestion]:
    """Walk the system questions answering no; returns the questions asked."""
    asked = []
    question = next_question(progress)
    while question.kind == QuestionKind.SYSTEM:
        asked.append(question)
        progress.system_cursor += 1
        question = next_question(progress)
    return asked


class TestQuestionVariant:

    def test_system_question_requires_type(self):
        with pytest.raises(ValueError):
            OnboardingQuestion(QuestionKind.SYSTEM)

    def test_other_questions_reject_type(self):
        with pytest.raises(ValueError):
            OnboardingQuestion(QuestionKind.AGE, SystemType.HEATING)

    def test_questions_compare_by_value(self):
        assert OnboardingQuestion.system(SystemType.WATER) == OnboardingQuestion(QuestionKind.SYSTEM, SystemType.WATER)

    def test_str(self):
        assert str(OnboardingQuestion.system(SystemType.COOLING)) == "system(Cooling)"
        assert str(AGE_QUESTION) == "age"


class TestNextQuestion:
    """Location, age, each asked system in order, usage, then done."""

    def test_starts_with_location(self):
        assert next_question(OnboardingProgress()) == LOCATION_QUESTION

    def test_age_after_location(self):
        assert next_question(_located(age=None)) == AGE_QUESTION

    def test_first_system_after_age(self):
        assert next_question(_located()) == OnboardingQuestion.system(SystemType.HEATING)

    def test_systems_asked_in_order_skipping_auto_affirmed_and_other(self):
        progress = _located()
        asked = _answer_all_systems(progress)
        assert [q.system_type for q in asked] == ASKED_SYSTEMS

    def test_auto_affirmed_systems_are_recorded_when_walked_past(self):
        progress = _located()
        _answer_all_systems(progress)
        assert set(progress.systems) == set(AUTO_AFFIRMED_SYSTEMS)
        assert not progress.has_system(SystemType.OTHER)

    def test_usage_after_systems(self):
        progress = _located()
        _answer_all_systems(progress)
        assert next_question(progress) == USAGE_PATTERN_QUESTION
        assert progress.systems_done

    def test_idempotent_without_mutation(self):
        for progress in (OnboardingProgress(), _located(age=None), _located()):
            assert next_question(progress) == next_question(progress)

    def test_idempotent_across_auto_affirmed_run(self):
        progress = _located()
        # Cursor sitting on Plumbing: the walk records the run and stops at Landscaping
        progress.system_cursor = SYSTEM_TYPES.index(SystemType.PLUMBING)
        first = next_question(progress)
        second = next_question(progress)
        assert first == second == OnboardingQuestion.system(SystemType.LANDSCAPING)

    def test_completion_is_stable(self):
        progress = _located()
        _answer_all_systems(progress)
        progress.usage_pattern = UsagePattern(OccupancyFrequency.MONTHLY)
        assert next_question(progress) == NO_QUESTION
        assert next_question(progress) == NO_QUESTION
        assert next_question(progress).is_terminal

    def test_declined_system_not_recorded(self):
        progress = _located()
        assert next_question(progress).system_type == SystemType.HEATING
        progress.system_cursor += 1
        assert next_question(progress).system_type == SystemType.COOLING
        assert not progress.has_system(SystemType.HEATING)


class TestHelpers:

    def test_skipped_systems(self):
        assert is_skipped_system(SystemType.PLUMBING)
        assert is_skipped_system(SystemType.OTHER)
        assert not is_skipped_system(SystemType.HEATING)

    def test_apply_auto_affirmed_keeps_existing_entries(self):
        progress = OnboardingProgress()
        progress.add_system(SystemPresence(SystemType.ROOFING, age_years=12))
        apply_auto_affirmed(progress)
        assert set(progress.systems) == set(AUTO_AFFIRMED_SYSTEMS)
        assert progress.systems[SystemType.ROOFING].age_years == 12

    def test_remaining_questions(self):
        assert remaining_questions(OnboardingProgress()) == 2 + len(ASKED_SYSTEMS) + 1
        progress = _located()
        _answer_all_systems(progress)
        assert remaining_questions(progress) == 1


class TestProgressSerialization:

    def test_round_trip_keeps_systems_and_usage(self):
        progress = _located()
        progress.add_system(SystemPresence(SystemType.HEATING, notes="oil furnace"))
        progress.usage_pattern = UsagePattern(OccupancyFrequency.SEASONALLY, seasonal=True)
        progress.system_cursor = 3

        data = progress.to_dict()
        assert data["systems"][0]["type"] == "Heating"
        assert data["usage_pattern"]["occupancy_frequency"] == "Seasonally"

        restored = OnboardingProgress.from_dict(data)
        assert restored.location == progress.location
        assert restored.systems[SystemType.HEATING].notes == "oil furnace"
        assert restored.usage_pattern == progress.usage_pattern
        assert restored.system_cursor == 3

    def test_systems_have_set_semantics(self):
        progress = OnboardingProgress()
        progress.add_system(SystemPresence(SystemType.WATER))
        progress.add_system(SystemPresence(SystemType.WATER, notes="well"))
        assert len(progress.systems) == 1
        assert progress.systems[SystemType.WATER].notes is None
