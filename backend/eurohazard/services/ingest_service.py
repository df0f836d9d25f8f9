"""One adapter run: fetch, deduplicate/persist, fan out."""

import structlog

from eurohazard.models import DisasterEvent
from eurohazard.services.broadcaster import Broadcaster
from eurohazard.services.dedup_service import DeduplicationService
from eurohazard.sources.base import AbstractSource

logger = structlog.get_logger()


class IngestService:
    def __init__(
        self,
        source: AbstractSource,
        deduplicator: DeduplicationService,
        broadcaster: Broadcaster,
    ):
        self.source = source
        self.deduplicator = deduplicator
        self.broadcaster = broadcaster

    async def run(self) -> list[DisasterEvent]:
        candidates = await self.source.fetch()
        if not candidates:
            logger.info("No new events", source=self.source.source_id)
            return []

        events = await self.deduplicator.ingest(candidates)

        # Persistence is done by now; fan-out cannot undo it
        if events:
            self.broadcaster.broadcast_events(events)

        logger.info(
            "Ingest run completed",
            source=self.source.source_id,
            found=len(candidates),
            persisted=len(events),
        )
        return events
