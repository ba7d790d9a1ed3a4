"""
Upstate Home Copilot - Supabase Client.

Low-level database access for property records and chat messages.

Tables:
- property_profiles: one row per onboarded property (id minted by the DB)
- chat_messages: one row per message, keyed by record_id, upserted by id
"""

import asyncio
import contextlib
import logging
from typing import Any

from supabase import Client, create_client

from copilot.config import settings
from onboarding.state import TranscriptMessage

from .adapter import MessagesCallback, StoreError

logger = logging.getLogger(__name__)

PROFILES_TABLE = "property_profiles"
MESSAGES_TABLE = "chat_messages"

# Singleton client instance
_client: Client | None = None


def get_client() -> Client:
    """
    Get the Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        _client = create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
        )

    return _client


# =============================================================================
# Live Feed
# =============================================================================


class PollingSubscription:
    """
    Live message feed for one record.

    Re-reads the record's messages every interval and pushes the full
    ordered list to the callback whenever it differs from the last
    delivery. The first delivery happens immediately.
    """

    def __init__(
        self,
        store: "SupabasePropertyStore",
        record_id: str,
        callback: MessagesCallback,
        interval: float,
    ):
        self.record_id = record_id
        self._store = store
        self._callback = callback
        self._interval = interval
        self._last_signature: tuple | None = None
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            try:
                messages = await self._store.fetch_messages(self.record_id)
            except StoreError:
                # Already logged; try again on the next tick
                messages = None

            if messages is not None:
                signature = tuple((m.id, m.text, m.timestamp) for m in messages)
                if signature != self._last_signature:
                    self._last_signature = signature
                    self._callback(messages)

            await asyncio.sleep(self._interval)

    @property
    def active(self) -> bool:
        return not self._task.done()

    def unsubscribe(self) -> None:
        self._task.cancel()

    async def wait_closed(self) -> None:
        with contextlib.suppress(asyncio.CancelledError):
            await self._task


# =============================================================================
# Store
# =============================================================================


class SupabasePropertyStore:
    """PropertyStore backed by Supabase tables."""

    def __init__(
        self,
        client: Client | None = None,
        *,
        poll_interval: float = 2.0,
        history_limit: int = 50,
    ):
        self._client = client
        self.poll_interval = poll_interval
        self.history_limit = history_limit

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_client()
        return self._client

    async def create_record(self, draft: dict[str, Any]) -> str:
        """Insert a property profile. The database mints the id."""
        try:
            response = self.client.table(PROFILES_TABLE).insert(draft).execute()
        except Exception as e:
            logger.error(f"Failed to create property record: {e}")
            raise StoreError("Failed to create property record") from e

        if not response.data:
            raise StoreError("Insert returned no row")
        record_id = response.data[0]["id"]
        logger.info(f"Created property record {record_id}")
        return record_id

    async def save_record(self, record_id: str, snapshot: dict[str, Any]) -> None:
        """Update the profile in place; id and created_at are never sent."""
        update = {k: v for k, v in snapshot.items() if k not in ("id", "created_at")}
        try:
            (
                self.client.table(PROFILES_TABLE)
                .update(update)
                .eq("id", record_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to save property record {record_id}: {e}")
            raise StoreError(f"Failed to save property record {record_id}") from e

    async def append_message(self, record_id: str, message: TranscriptMessage) -> None:
        """Upsert by message id so replays never duplicate a message."""
        data = message.to_dict()
        data["record_id"] = record_id
        try:
            self.client.table(MESSAGES_TABLE).upsert(data).execute()
        except Exception as e:
            logger.error(f"Failed to save chat message {message.id}: {e}")
            raise StoreError(f"Failed to save chat message {message.id}") from e

    async def fetch_messages(self, record_id: str, limit: int | None = None) -> list[TranscriptMessage]:
        """Get a record's most recent messages, oldest first."""
        try:
            response = (
                self.client.table(MESSAGES_TABLE)
                .select("*")
                .eq("record_id", record_id)
                .order("timestamp", desc=True)
                .limit(limit or self.history_limit)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch chat messages for {record_id}: {e}")
            raise StoreError(f"Failed to fetch chat messages for {record_id}") from e

        messages = []
        for row in reversed(response.data or []):
            try:
                messages.append(TranscriptMessage.from_dict(row))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping undecodable message row: {e}")
        return messages

    async def subscribe_messages(self, record_id: str, on_update: MessagesCallback) -> PollingSubscription:
        return PollingSubscription(self, record_id, on_update, self.poll_interval)

    async def delete_record(self, record_id: str) -> None:
        """Delete all chat messages, then the profile."""
        try:
            self.client.table(MESSAGES_TABLE).delete().eq("record_id", record_id).execute()
            self.client.table(PROFILES_TABLE).delete().eq("id", record_id).execute()
        except Exception as e:
            logger.error(f"Failed to delete property record {record_id}: {e}")
            raise StoreError(f"Failed to delete property record {record_id}") from e
