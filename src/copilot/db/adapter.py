"""
Property Store Protocol.

Defines the persistent-store contract the onboarding dialogue depends on.
Implementations: SupabasePropertyStore (copilot.db.client) for the real
document store, InMemoryPropertyStore (copilot.db.memory) for the dev CLI
and tests.

All calls are async and may fail. Callers treat failures as recoverable:
log, keep the in-memory state, retry on the next interaction.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from onboarding.state import TranscriptMessage

MessagesCallback = Callable[[list["TranscriptMessage"]], None]


class StoreError(RuntimeError):
    """A store read or write failed."""


@runtime_checkable
class Subscription(Protocol):
    """Handle for a live message feed."""

    def unsubscribe(self) -> None:
        """Stop delivering updates. Safe to call more than once."""
        ...


@runtime_checkable
class PropertyStore(Protocol):
    """
    Persistent store for property records and their chat messages.

    Records are identified by an id minted by the store at creation.
    """

    async def create_record(self, draft: dict[str, Any]) -> str:
        """Create a property record from a draft. Returns the new record id."""
        ...

    async def save_record(self, record_id: str, snapshot: dict[str, Any]) -> None:
        """
        Merge a snapshot onto an existing record.

        Must not change the record id or its server-assigned created_at.
        """
        ...

    async def append_message(self, record_id: str, message: "TranscriptMessage") -> None:
        """Persist a chat message under a record. Idempotent per message id."""
        ...

    async def fetch_messages(self, record_id: str, limit: int = 50) -> list["TranscriptMessage"]:
        """The most recent `limit` messages for a record, oldest first."""
        ...

    async def subscribe_messages(self, record_id: str, on_update: MessagesCallback) -> Subscription:
        """
        Push the record's ordered messages to on_update whenever they change.

        Each delivery is the full ordered list, not a delta.
        """
        ...

    async def delete_record(self, record_id: str) -> None:
        """Delete a record and all its messages."""
        ...
