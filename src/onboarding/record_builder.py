"""
Incremental Record Builder.

Owns the lifecycle of the property record behind an onboarding session:
create it exactly once when the location arrives, then re-save the full
progress snapshot after every successful extraction.

Saves are fire-and-forget for the dialogue but run one at a time, in the
order they were issued, so a slow early save can never overwrite a later
one with stale data.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .sequencer import apply_auto_affirmed
from .state import OccupancyFrequency, OnboardingProgress

logger = logging.getLogger(__name__)


# =============================================================================
# Risk Factors
# =============================================================================

OLD_SYSTEMS_AGE_THRESHOLD = 30

LOW_OCCUPANCY_FREQUENCIES = {OccupancyFrequency.RARELY, OccupancyFrequency.SEASONALLY}


class RiskType(Enum):
    LOW_OCCUPANCY = "Low Occupancy"
    WINTER_EXPOSURE = "Winter Exposure"
    REMOTE_LOCATION = "Remote Location"
    OLD_SYSTEMS = "Old Systems"
    OTHER = "Other"


class RiskSeverity(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class RiskFactor:
    type: RiskType
    severity: RiskSeverity
    description: str | None = None

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
        }


def derive_risk_factors(progress: OnboardingProgress) -> list[RiskFactor]:
    """
    Risk factors implied by the progress. Pure; the result replaces any
    previously saved list rather than extending it.
    """
    risks = []

    usage = progress.usage_pattern
    if usage and usage.occupancy_frequency in LOW_OCCUPANCY_FREQUENCIES:
        risks.append(RiskFactor(
            type=RiskType.LOW_OCCUPANCY,
            severity=RiskSeverity.MEDIUM,
            description="The house sits empty for long stretches.",
        ))

    if progress.age is not None and progress.age > OLD_SYSTEMS_AGE_THRESHOLD:
        risks.append(RiskFactor(
            type=RiskType.OLD_SYSTEMS,
            severity=RiskSeverity.MEDIUM,
            description=f"The house is {progress.age} years old.",
        ))

    return risks


def build_snapshot(progress: OnboardingProgress, user_id: str | None = None) -> dict[str, Any]:
    """
    Full record snapshot for the current progress.

    Never includes id or created_at: those belong to the stored record.
    """
    data = progress.to_dict()
    data.pop("system_cursor")
    snapshot = {
        **data,
        "risk_factors": [r.to_dict() for r in derive_risk_factors(progress)],
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    if user_id is not None:
        snapshot["user_id"] = user_id
    return snapshot


# =============================================================================
# Builder
# =============================================================================


@dataclass
class SaveRequest:
    record_id: str
    snapshot: dict[str, Any]
    sequence: int


class IncrementalRecordBuilder:
    """
    Create-once, save-many record lifecycle.

    record_id is None until the record exists; there is no placeholder id.
    """

    def __init__(self, store, record_id: str | None = None):
        self.store = store
        self.record_id: str | None = record_id
        self._create_lock = asyncio.Lock()
        self._queue: asyncio.Queue[SaveRequest] | None = None
        self._worker: asyncio.Task | None = None
        self._issued = 0
        self.last_saved = 0
        self._failed_snapshot: SaveRequest | None = None

    @property
    def created(self) -> bool:
        return self.record_id is not None

    @property
    def has_failed_save(self) -> bool:
        return self._failed_snapshot is not None

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create(self, progress: OnboardingProgress, user_id: str) -> str:
        """
        Create the record exactly once.

        Replays and concurrent callers get the existing id back. Store
        failures propagate; the record stays not-created and the caller
        may try again later.
        """
        async with self._create_lock:
            if self.record_id is not None:
                return self.record_id

            apply_auto_affirmed(progress)
            draft = build_snapshot(progress, user_id=user_id)
            self.record_id = await self.store.create_record(draft)
            logger.info(f"Property record {self.record_id} created")
            return self.record_id

    # -------------------------------------------------------------------------
    # Save
    # -------------------------------------------------------------------------

    def save(self, progress: OnboardingProgress, user_id: str | None = None) -> int:
        """
        Queue a snapshot save and return immediately.

        The snapshot is taken now, so later mutations of progress do not
        leak into this save. Returns the save's sequence number.
        """
        if self.record_id is None:
            raise RuntimeError("save() before the record exists")

        self._issued += 1
        request = SaveRequest(
            record_id=self.record_id,
            snapshot=build_snapshot(progress, user_id=user_id),
            sequence=self._issued,
        )
        self._ensure_worker()
        self._queue.put_nowait(request)
        return request.sequence

    def retry_failed(self) -> bool:
        """Re-issue the last failed snapshot unless a newer one is queued."""
        failed = self._failed_snapshot
        if failed is None:
            return False
        self._failed_snapshot = None
        if failed.sequence < self._issued:
            return False

        self._issued += 1
        self._ensure_worker()
        self._queue.put_nowait(SaveRequest(failed.record_id, failed.snapshot, self._issued))
        return True

    def _ensure_worker(self) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain_queue())

    async def _drain_queue(self) -> None:
        while True:
            request = await self._queue.get()
            try:
                await self.store.save_record(request.record_id, request.snapshot)
                self.last_saved = request.sequence
                if self._failed_snapshot and self._failed_snapshot.sequence < request.sequence:
                    self._failed_snapshot = None
            except Exception as e:
                logger.warning(f"Save #{request.sequence} for record {request.record_id} failed: {e}")
                self._failed_snapshot = request
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every issued save has finished (or failed)."""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Drain outstanding saves and stop the worker."""
        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

    def reset(self) -> None:
        self.record_id = None
        self._failed_snapshot = None
