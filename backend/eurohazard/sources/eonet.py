"""Natural-event adapter for NASA EONET."""

from typing import Any

import structlog

from eurohazard.clients.eonet import EONETClient
from eurohazard.config import Settings
from eurohazard.sources.base import AbstractSource, CandidateEvent
from eurohazard.utils.date_helpers import parse_iso_datetime, utc_now

logger = structlog.get_logger()

# EONET category id -> canonical hazard type. Anything else is dropped.
CATEGORY_TYPES: dict[str, str] = {
    "severeStorms": "weather",
    "severe-storms": "weather",
    "volcanoes": "volcano",
    "earthquakes": "earthquake",
    "floods": "flood",
    "wildfires": "wildfire",
}

# Estimated affected radius in metres
RADIUS_VOLCANO = 100_000
RADIUS_STORM = 50_000
RADIUS_DEFAULT = 25_000


def map_category(category_id: str) -> str | None:
    return CATEGORY_TYPES.get(category_id)


def natural_event_severity(hazard_type: str) -> str:
    if hazard_type in ("weather", "volcano"):
        return "high"
    return "medium"


def natural_event_radius(hazard_type: str) -> int:
    if hazard_type == "volcano":
        return RADIUS_VOLCANO
    if hazard_type == "weather":
        return RADIUS_STORM
    return RADIUS_DEFAULT


class NaturalEventSource(AbstractSource):
    source_id = "NASA_EONET"

    def __init__(self, settings: Settings, client: EONETClient | None = None):
        super().__init__(settings)
        self.client = client or EONETClient(settings)

    async def collect(self) -> list[CandidateEvent]:
        events = await self.client.get_events(
            limit=self.settings.eonet_limit,
            days=self.settings.eonet_days,
        )

        candidates: list[CandidateEvent] = []
        for event in events:
            try:
                candidate = self._parse_event(event)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(
                    "Failed to parse EONET event",
                    eonet_id=event.get("id") if isinstance(event, dict) else None,
                    error=str(e),
                )
                continue
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def _parse_event(self, event: dict[str, Any]) -> CandidateEvent | None:
        categories = event.get("categories") or []
        geometries = event.get("geometry") or event.get("geometries") or []
        if not categories or not geometries:
            return None

        hazard_type = map_category(categories[0].get("id", ""))
        if hazard_type is None:
            return None

        geometry = geometries[0]
        coords = geometry.get("coordinates") or []
        if len(coords) < 2:
            return None

        lon, lat = float(coords[0]), float(coords[1])
        if not self.in_area(lat, lon):
            return None

        title = event.get("title") or "Natural event"
        return CandidateEvent(
            id=f"eonet_{event['id']}",
            type=hazard_type,
            severity=natural_event_severity(hazard_type),
            latitude=lat,
            longitude=lon,
            timestamp=parse_iso_datetime(geometry.get("date")) or utc_now(),
            description=f"{title} - {event.get('description') or 'Natural event detected'}",
            source=self.source_id,
            radius=natural_event_radius(hazard_type),
        )

    async def close(self):
        await self.client.close()
