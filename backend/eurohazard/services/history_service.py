"""Archive persisted disaster events as historical samples for the risk engine."""

from datetime import datetime

import structlog

from eurohazard.services.regions import BoundingBox, resolve_region
from eurohazard.services.store import Store

logger = structlog.get_logger()

# Weather records are reaped after a few hours and are not history
ARCHIVED_TYPES = ("earthquake", "wildfire", "flood", "volcano")


async def archive_recent_events(
    store: Store,
    aoi: BoundingBox,
    since: datetime,
    hazard_types: tuple[str, ...] = ARCHIVED_TYPES,
    limit: int = 5000,
) -> dict[str, int]:
    """
    Copy events newer than ``since`` into ``historical_data``.

    A sample already on file for the same type, position and timestamp is
    skipped, so overlapping runs never double-count an event.

    Returns the number of new samples per hazard type.
    """
    archived: dict[str, int] = {}
    for hazard_type in hazard_types:
        events = await store.list_events(type=hazard_type, since=since, limit=limit)
        added = 0
        for event in events:
            if await store.historical_sample_exists(
                event.type, event.latitude, event.longitude, event.timestamp
            ):
                continue
            await store.add_historical_sample({
                "type": event.type,
                "region": resolve_region(event.latitude, event.longitude, aoi),
                "latitude": event.latitude,
                "longitude": event.longitude,
                "severity": event.severity,
                "timestamp": event.timestamp,
                "seasonal_factors": {"month": event.timestamp.month},
            })
            added += 1

        archived[hazard_type] = added
        logger.info(
            "Historical samples archived",
            type=hazard_type,
            found=len(events),
            added=added,
        )
    return archived
