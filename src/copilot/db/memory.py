"""
In-memory Property Store.

Same contract as the Supabase store, held in dicts. Used by the CLI in
--offline mode and by the test suite. Subscriptions are delivered
synchronously on every message write, like a local listener would.
"""

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from onboarding.state import TranscriptMessage

from .adapter import MessagesCallback

logger = logging.getLogger(__name__)


class InMemorySubscription:
    def __init__(self, store: "InMemoryPropertyStore", record_id: str, callback: MessagesCallback):
        self._store = store
        self.record_id = record_id
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._store._subscriptions.remove(self)


class InMemoryPropertyStore:
    """Dict-backed PropertyStore."""

    def __init__(self):
        self.records: dict[str, dict[str, Any]] = {}
        self.messages: dict[str, dict[str, TranscriptMessage]] = {}
        self._subscriptions: list[InMemorySubscription] = []

    async def create_record(self, draft: dict[str, Any]) -> str:
        record_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        record = copy.deepcopy(draft)
        record.update({"id": record_id, "created_at": now, "updated_at": now})
        self.records[record_id] = record
        self.messages.setdefault(record_id, {})
        logger.debug(f"Created record {record_id}")
        return record_id

    async def save_record(self, record_id: str, snapshot: dict[str, Any]) -> None:
        if record_id not in self.records:
            raise KeyError(f"Unknown record: {record_id}")
        record = self.records[record_id]
        update = {k: v for k, v in copy.deepcopy(snapshot).items() if k not in ("id", "created_at")}
        record.update(update)

    async def append_message(self, record_id: str, message: TranscriptMessage) -> None:
        self.messages.setdefault(record_id, {})[message.id] = message
        self._publish(record_id)

    async def fetch_messages(self, record_id: str, limit: int = 50) -> list[TranscriptMessage]:
        return self._ordered(record_id)[-limit:] if limit > 0 else []

    async def subscribe_messages(self, record_id: str, on_update: MessagesCallback) -> InMemorySubscription:
        subscription = InMemorySubscription(self, record_id, on_update)
        self._subscriptions.append(subscription)
        on_update(self._ordered(record_id))
        return subscription

    async def delete_record(self, record_id: str) -> None:
        self.records.pop(record_id, None)
        self.messages.pop(record_id, None)
        self._publish(record_id)

    def _ordered(self, record_id: str) -> list[TranscriptMessage]:
        return sorted(self.messages.get(record_id, {}).values(), key=lambda m: m.timestamp)

    def _publish(self, record_id: str) -> None:
        messages = self._ordered(record_id)
        for subscription in list(self._subscriptions):
            if subscription.record_id == record_id:
                subscription.callback(messages)
