"""Deduplication and upsert of adapter candidates, plus the weather reaper."""

from collections.abc import Callable
from datetime import datetime, timedelta

import structlog

from eurohazard.config import Settings
from eurohazard.models import DisasterEvent
from eurohazard.models.disaster import HAZARD_TYPES, SEVERITIES
from eurohazard.services.store import Store
from eurohazard.sources.base import CandidateEvent
from eurohazard.utils.date_helpers import utc_now

logger = structlog.get_logger()

# Record kinds that are only meaningful for a short while after observation
EPHEMERAL_TYPES = ("weather",)


class DeduplicationService:
    """Decides accept/suppress/replace for candidates against the Store."""

    def __init__(
        self,
        store: Store,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.window = timedelta(minutes=settings.dedup_window_minutes)
        self.retention = timedelta(hours=settings.weather_retention_hours)
        self._clock = clock

    async def ingest(self, candidates: list[CandidateEvent]) -> list[DisasterEvent]:
        """
        Persist candidates in the order given.

        Candidates whose type or severity is outside the canonical
        vocabulary are rejected before touching the Store.
        Candidates with a provider id are always upserted. Locality-keyed
        candidates (no provider id) are suppressed when a record of the same
        type and locality already exists inside the trailing dedup window.
        The check-then-write is best effort: two concurrent runs can both pass
        the check.

        Returns the events that were written.
        """
        persisted: list[DisasterEvent] = []
        suppressed = 0
        rejected = 0

        for candidate in candidates:
            if candidate.type not in HAZARD_TYPES or candidate.severity not in SEVERITIES:
                rejected += 1
                logger.warning(
                    "Rejecting candidate with unknown type or severity",
                    event_id=candidate.id,
                    type=candidate.type,
                    severity=candidate.severity,
                )
                continue

            try:
                if not candidate.has_stable_id and await self.is_duplicate(candidate):
                    suppressed += 1
                    logger.info(
                        "Skipping candidate, recent record exists",
                        locality=candidate.locality,
                        type=candidate.type,
                    )
                    continue

                event = await self.store.upsert_event(candidate.to_values())
                persisted.append(event)
            except Exception as e:
                logger.warning(
                    "Failed to upsert event",
                    source=candidate.source,
                    event_id=candidate.id,
                    error=str(e),
                )

        logger.info(
            "Candidates ingested",
            received=len(candidates),
            persisted=len(persisted),
            suppressed=suppressed,
            rejected=rejected,
        )
        return persisted

    async def is_duplicate(self, candidate: CandidateEvent) -> bool:
        since = candidate.timestamp - self.window
        existing = await self.store.find_recent_event(
            candidate.type, candidate.locality, since
        )
        return existing is not None

    async def reap_weather(self, now: datetime | None = None) -> int:
        """Delete ephemeral records older than the retention window."""
        cutoff = (now or self._clock()) - self.retention
        removed = 0
        for hazard_type in EPHEMERAL_TYPES:
            removed += await self.store.delete_events_before(hazard_type, cutoff)

        if removed:
            logger.info("Cleaned up old weather alerts", removed=removed, cutoff=cutoff.isoformat())
        return removed
