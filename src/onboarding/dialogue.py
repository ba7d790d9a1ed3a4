"""
Onboarding Dialogue.

Drives the intake conversation, one reply at a time:

    AwaitingReply(q) -> Extracting -> Advancing -> AwaitingAssistantPhrasing -> AwaitingReply(next)
    AwaitingReply(q) -> Extracting -> AwaitingClarification(q) -> AwaitingReply(q)

and Complete once the sequencer runs out of questions. Extraction and
sequencing happen synchronously; the only suspension points are the
record create, message writes and the assistant phrasing call.

Per reply: one user message, one assistant message, at most one record
create, at most one record save, and either a clarification or an
advance, never both. Remote failures are logged, surfaced only through
`notice`, and retried on the next reply.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from copilot.db.adapter import PropertyStore, Subscription
from copilot.db.request_context import SessionContext, get_session_context

from .assistant import AssistantService, build_system_prompt
from .clarification import (
    CLOSING_MESSAGE,
    WELCOME_MESSAGE,
    ClarificationPolicy,
    Decision,
    Evaluation,
    clarification_text,
    question_text,
)
from .record_builder import IncrementalRecordBuilder
from .sequencer import next_question
from .state import (
    MessageRole,
    OnboardingProgress,
    OnboardingQuestion,
    QuestionKind,
    SystemPresence,
    TranscriptMessage,
)
from .transcript import TranscriptObserver, TranscriptReconciler

logger = logging.getLogger(__name__)

SAVE_FAILED_NOTICE = "We couldn't save your progress just now. We'll try again in a moment."


class DialogueState(Enum):
    AWAITING_REPLY = "awaiting_reply"
    EXTRACTING = "extracting"
    ADVANCING = "advancing"
    AWAITING_ASSISTANT_PHRASING = "awaiting_assistant_phrasing"
    AWAITING_CLARIFICATION = "awaiting_clarification"
    COMPLETE = "complete"


@dataclass
class TurnResult:
    """What one reply did."""
    question: OnboardingQuestion          # The question the reply answered
    decision: Decision
    next_question: OnboardingQuestion     # What we are waiting for now
    user_message: TranscriptMessage
    assistant_message: TranscriptMessage
    record_created: bool = False
    save_issued: bool = False

    @property
    def completed(self) -> bool:
        return self.next_question.is_terminal


class OnboardingDialogue:
    """
    Conversational onboarding for one property.

    Dependencies are injected so the dialogue runs against fakes in tests
    and the in-memory store in offline mode.
    """

    def __init__(
        self,
        store: PropertyStore,
        session: SessionContext | None = None,
        assistant: AssistantService | None = None,
        *,
        assistant_timeout: float = 8.0,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.session = session or get_session_context()
        self.assistant = assistant
        self.assistant_timeout = assistant_timeout
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.progress = OnboardingProgress()
        self.policy = ClarificationPolicy()
        self.reconciler = TranscriptReconciler()
        self.builder = IncrementalRecordBuilder(store, record_id=self.session.record_id)
        self.question = next_question(self.progress)
        self.state = DialogueState.AWAITING_REPLY

        self._subscription: Subscription | None = None
        self._create_failed = False

    # =========================================================================
    # Observation
    # =========================================================================

    @property
    def transcript(self) -> list[TranscriptMessage]:
        return self.reconciler.transcript

    def observe(self, observer: TranscriptObserver) -> Callable[[], None]:
        """Get every transcript change. Returns a callable that stops it."""
        return self.reconciler.observe(observer)

    @property
    def is_complete(self) -> bool:
        return self.state == DialogueState.COMPLETE

    @property
    def record_id(self) -> str | None:
        return self.builder.record_id

    @property
    def notice(self) -> str | None:
        """Generic notice for the user when something failed to save."""
        if self._create_failed or self.builder.has_failed_save:
            return SAVE_FAILED_NOTICE
        if self.builder.created and self.reconciler.pending():
            return SAVE_FAILED_NOTICE
        return None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> TranscriptMessage:
        """Greet the owner and ask the first question."""
        if self.builder.created:
            await self._subscribe()
        text = f"{WELCOME_MESSAGE}\n\n{question_text(self.question)}"
        return await self._emit(MessageRole.ASSISTANT, text)

    async def close(self) -> None:
        """Finish outstanding saves and stop the live feed."""
        await self.builder.close()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def reset(self, delete_record: bool = False) -> None:
        """
        Discard all progress and start over.

        With delete_record, the stored record and its messages are
        deleted as well.
        """
        await self.builder.drain()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        if delete_record and self.builder.record_id is not None:
            try:
                await self.store.delete_record(self.builder.record_id)
            except Exception as e:
                logger.warning(f"Failed to delete record {self.builder.record_id}: {e}")

        self.builder.reset()
        self.session.record_id = None
        self.progress = OnboardingProgress()
        self.policy.reset()
        self.reconciler.clear()
        self.question = next_question(self.progress)
        self.state = DialogueState.AWAITING_REPLY
        self._create_failed = False
        logger.info("Onboarding reset")

    # =========================================================================
    # Replies
    # =========================================================================

    async def handle_reply(self, text: str) -> TurnResult | None:
        """
        Process one reply from the owner.

        Returns None when onboarding is already complete (the reply is
        free-form chat, not ours) or the reply is blank.
        """
        if self.state == DialogueState.COMPLETE:
            logger.debug("Onboarding complete; reply not intercepted")
            return None
        text = text.strip()
        if not text:
            return None

        await self._retry_pending()

        question = self.question
        user_message = await self._emit(MessageRole.USER, text)

        self.state = DialogueState.EXTRACTING
        evaluation = self.policy.evaluate(question, text, current_year=self.clock().year)

        if evaluation.decision == Decision.CLARIFY:
            self.state = DialogueState.AWAITING_CLARIFICATION
            # No newer snapshot this reply, so a failed save goes out again
            retried = self._retry_failed_save()
            reply = await self._emit(
                MessageRole.ASSISTANT,
                clarification_text(question, evaluation.attempt),
            )
            self.state = DialogueState.AWAITING_REPLY
            return TurnResult(
                question=question,
                decision=evaluation.decision,
                next_question=question,
                user_message=user_message,
                assistant_message=reply,
                save_issued=retried,
            )

        self.state = DialogueState.ADVANCING
        self._apply(evaluation)
        self.question = next_question(self.progress)
        created, saved = await self._persist_progress()

        if self.question.is_terminal:
            self.state = DialogueState.COMPLETE
            reply = await self._emit(MessageRole.ASSISTANT, CLOSING_MESSAGE)
            logger.info(f"Onboarding complete for record {self.builder.record_id}")
        else:
            self.state = DialogueState.AWAITING_ASSISTANT_PHRASING
            phrased = await self._phrase(self.question)
            reply = await self._emit(MessageRole.ASSISTANT, phrased)
            self.state = DialogueState.AWAITING_REPLY

        return TurnResult(
            question=question,
            decision=evaluation.decision,
            next_question=self.question,
            user_message=user_message,
            assistant_message=reply,
            record_created=created,
            save_issued=saved,
        )

    def _apply(self, evaluation: Evaluation) -> None:
        """Write an extraction result into progress."""
        question = evaluation.question
        kind = question.kind

        if kind == QuestionKind.LOCATION:
            self.progress.location = evaluation.value
        elif kind == QuestionKind.AGE:
            self.progress.age = evaluation.value
        elif kind == QuestionKind.SYSTEM:
            if evaluation.value is True:
                self.progress.add_system(SystemPresence(question.system_type))
            self.progress.system_cursor += 1
        elif kind == QuestionKind.USAGE_PATTERN:
            self.progress.usage_pattern = evaluation.value

    # =========================================================================
    # Persistence
    # =========================================================================

    async def _persist_progress(self) -> tuple[bool, bool]:
        """Create the record on first data, save on every later step."""
        if not self.session.can_persist:
            logger.info("No user yet; keeping onboarding data local")
            return False, False

        if not self.builder.created:
            return await self._create_record(), False

        self.builder.save(self.progress, user_id=self.session.user_id)
        return False, True

    async def _create_record(self) -> bool:
        """Create the record, then flush buffered messages, then subscribe."""
        try:
            record_id = await self.builder.create(self.progress, self.session.user_id)
        except Exception as e:
            logger.warning(f"Failed to create property record: {e}")
            self._create_failed = True
            return False

        self._create_failed = False
        self.session.record_id = record_id
        await self.reconciler.flush(self.store, record_id)
        await self._subscribe()
        return True

    async def _subscribe(self) -> None:
        if self._subscription is not None or self.builder.record_id is None:
            return
        try:
            self._subscription = await self.store.subscribe_messages(
                self.builder.record_id, self.reconciler.apply_remote
            )
        except Exception as e:
            logger.warning(f"Failed to subscribe to messages for {self.builder.record_id}: {e}")

    async def _retry_pending(self) -> None:
        """Retry a failed create, message writes and the live feed."""
        if not self.session.can_persist:
            return

        if not self.builder.created:
            if self.progress.location is not None:
                await self._create_record()
            return

        if self.reconciler.pending():
            await self.reconciler.flush(self.store, self.builder.record_id)
        if self._subscription is None:
            await self._subscribe()

    def _retry_failed_save(self) -> bool:
        """Re-issue the last failed save. Only for replies that save nothing newer."""
        if not (self.session.can_persist and self.builder.created):
            return False
        return self.builder.retry_failed()

    async def _emit(self, role: MessageRole, text: str) -> TranscriptMessage:
        """Append a message locally, and persist it if the record exists."""
        message = TranscriptMessage(
            role=role,
            text=text,
            timestamp=self.clock(),
            record_id=self.builder.record_id,
            user_id=self.session.user_id,
        )
        self.reconciler.append_local(message)

        if self.builder.created and self.session.can_persist:
            try:
                await self.store.append_message(self.builder.record_id, message)
                self.reconciler.mark_persisted(message.id)
            except Exception as e:
                logger.warning(f"Failed to persist message {message.id}: {e}")
        return message

    # =========================================================================
    # Phrasing
    # =========================================================================

    async def _phrase(self, question: OnboardingQuestion) -> str:
        """Assistant wording for the question, or the templated text."""
        fallback = question_text(question)
        if self.assistant is None:
            return fallback

        system_prompt = build_system_prompt(self.progress, question)
        try:
            reply = await asyncio.wait_for(
                self.assistant.complete(self.transcript, system_prompt, question=question),
                timeout=self.assistant_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Assistant phrasing timed out after {self.assistant_timeout}s")
            return fallback
        except Exception as e:
            logger.warning(f"Assistant phrasing failed: {e}")
            return fallback

        return (reply or "").strip() or fallback
