"""
Message Stream Reconciler.

Keeps one observable transcript built from two sources:
- a local buffer of messages appended during this session (optimistic,
  possibly not yet persisted), and
- the remote feed for the property record, delivered as whole ordered
  snapshots by the store subscription.

The rendered transcript is always the union by id (first occurrence
wins) stable-sorted by timestamp, so it never shows a message twice and
is always in order, whichever source delivers first.
"""

import dataclasses
import logging
from collections.abc import Callable, Iterable

from .state import TranscriptMessage

logger = logging.getLogger(__name__)

TranscriptObserver = Callable[[list[TranscriptMessage]], None]


def merge_transcripts(*sources: Iterable[TranscriptMessage]) -> list[TranscriptMessage]:
    """Union messages by id (first occurrence wins), then stable-sort by timestamp."""
    seen: set[str] = set()
    merged: list[TranscriptMessage] = []
    for source in sources:
        for message in source:
            if message.id in seen:
                continue
            seen.add(message.id)
            merged.append(message)
    merged.sort(key=lambda m: m.timestamp)
    return merged


class TranscriptReconciler:
    """
    Two-source transcript.

    Local messages stay in the buffer until the store confirms them
    (either through a successful append or by showing up in the remote
    feed), so a failed write never makes a message disappear.
    """

    def __init__(self):
        self._local: list[TranscriptMessage] = []
        self._remote: list[TranscriptMessage] = []
        self._persisted: set[str] = set()
        self._observers: list[TranscriptObserver] = []

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    @property
    def transcript(self) -> list[TranscriptMessage]:
        """The merged, deduplicated, timestamp-ordered transcript."""
        return merge_transcripts(self._local, self._remote)

    def observe(self, observer: TranscriptObserver) -> Callable[[], None]:
        """Register an observer; returns a callable that removes it."""
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def _notify(self) -> None:
        if not self._observers:
            return
        snapshot = self.transcript
        for observer in list(self._observers):
            observer(snapshot)

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    def append_local(self, message: TranscriptMessage) -> None:
        """Optimistically add a message from this session."""
        self._local.append(message)
        self._notify()

    def apply_remote(self, messages: list[TranscriptMessage]) -> None:
        """Replace the remote snapshot with the latest feed delivery."""
        self._remote = list(messages)
        for message in self._remote:
            self._persisted.add(message.id)
        self._notify()

    def mark_persisted(self, message_id: str) -> None:
        self._persisted.add(message_id)

    def pending(self) -> list[TranscriptMessage]:
        """Local messages the store has not confirmed yet, in append order."""
        return [m for m in self._local if m.id not in self._persisted]

    @property
    def local(self) -> list[TranscriptMessage]:
        return list(self._local)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def flush(self, store, record_id: str) -> int:
        """
        Persist every pending local message under record_id.

        Must complete before the live feed is switched to the record, so
        the first remote snapshot already contains the buffered messages.
        Messages that fail stay pending and are retried on the next flush.
        Returns the number of messages written.
        """
        written = 0
        for message in self.pending():
            rekeyed = self._rekey(message, record_id)
            try:
                await store.append_message(record_id, rekeyed)
            except Exception as e:
                logger.warning(f"Failed to persist message {message.id}: {e}")
                continue
            self._persisted.add(message.id)
            written += 1
        return written

    def _rekey(self, message: TranscriptMessage, record_id: str) -> TranscriptMessage:
        """Key a buffered message under the record, in place in the buffer."""
        if message.record_id == record_id:
            return message
        rekeyed = dataclasses.replace(message, record_id=record_id)
        self._local = [rekeyed if m.id == message.id else m for m in self._local]
        return rekeyed

    def clear(self) -> None:
        self._local.clear()
        self._remote.clear()
        self._persisted.clear()
        self._notify()
