"""
Question Sequencer.

Decides which attribute to ask for next given the progress collected so
far. All transition logic lives in next_question(); the caller advances
state (sets fields, bumps system_cursor) before calling it again.
"""

from .state import (
    AGE_QUESTION,
    AUTO_AFFIRMED_SYSTEMS,
    CATCH_ALL_SYSTEM,
    LOCATION_QUESTION,
    NO_QUESTION,
    SYSTEM_TYPES,
    USAGE_PATTERN_QUESTION,
    OnboardingProgress,
    OnboardingQuestion,
    SystemPresence,
    SystemType,
)


def is_skipped_system(system_type: SystemType) -> bool:
    """Systems the dialogue never asks about."""
    return system_type in AUTO_AFFIRMED_SYSTEMS or system_type == CATCH_ALL_SYSTEM


def next_question(progress: OnboardingProgress) -> OnboardingQuestion:
    """
    Return what to ask for next.

    Walking past auto-affirmed systems records them and moves the cursor,
    so a second call on the same progress returns the same question.
    """
    if progress.location is None:
        return LOCATION_QUESTION

    if progress.age is None:
        return AGE_QUESTION

    while progress.system_cursor < len(SYSTEM_TYPES):
        system_type = SYSTEM_TYPES[progress.system_cursor]
        if not is_skipped_system(system_type):
            return OnboardingQuestion.system(system_type)
        if system_type in AUTO_AFFIRMED_SYSTEMS:
            progress.add_system(SystemPresence(system_type))
        progress.system_cursor += 1

    if progress.usage_pattern is None:
        return USAGE_PATTERN_QUESTION

    return NO_QUESTION


def apply_auto_affirmed(progress: OnboardingProgress) -> None:
    """
    Record every auto-affirmed system up front.

    The record is created as soon as a location arrives, before the
    sequencer has walked the system list; the initial draft still carries
    the systems every house has.
    """
    for system_type in SYSTEM_TYPES:
        if system_type in AUTO_AFFIRMED_SYSTEMS:
            progress.add_system(SystemPresence(system_type))


def remaining_questions(progress: OnboardingProgress) -> int:
    """Count questions still to be asked (for progress display)."""
    count = 0
    if progress.location is None:
        count += 1
    if progress.age is None:
        count += 1
    count += sum(
        1 for t in SYSTEM_TYPES[progress.system_cursor:]
        if not is_skipped_system(t)
    )
    if progress.usage_pattern is None:
        count += 1
    return count
