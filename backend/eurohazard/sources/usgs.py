"""Seismic adapter for the USGS real-time earthquake feed."""

from typing import Any

import structlog

from eurohazard.clients.usgs import USGSClient
from eurohazard.config import Settings
from eurohazard.sources.base import AbstractSource, CandidateEvent
from eurohazard.utils.date_helpers import from_epoch_ms

logger = structlog.get_logger()


def earthquake_severity(magnitude: float) -> str:
    """Severity tier from magnitude. Lower bounds are inclusive."""
    if magnitude >= 8.0:
        return "critical"
    if magnitude >= 6.0:
        return "high"
    if magnitude >= 4.0:
        return "medium"
    return "low"


class SeismicSource(AbstractSource):
    source_id = "USGS"

    def __init__(self, settings: Settings, client: USGSClient | None = None):
        super().__init__(settings)
        self.client = client or USGSClient(settings)
        self.min_magnitude = settings.seismic_min_magnitude

    async def collect(self) -> list[CandidateEvent]:
        payload = await self.client.get_feed()
        features = payload.get("features")
        if not isinstance(features, list):
            raise ValueError("USGS payload has no features list")

        candidates: list[CandidateEvent] = []
        for feature in features:
            try:
                candidate = self._parse_feature(feature)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(
                    "Failed to parse USGS feature",
                    usgs_id=feature.get("id") if isinstance(feature, dict) else None,
                    error=str(e),
                )
                continue
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def _parse_feature(self, feature: dict[str, Any]) -> CandidateEvent | None:
        props = feature.get("properties") or {}
        coords = (feature.get("geometry") or {}).get("coordinates") or []
        mag = props.get("mag")

        if len(coords) < 2 or mag is None or feature.get("id") is None:
            logger.debug("Skipping incomplete USGS feature", usgs_id=feature.get("id"))
            return None

        lon, lat = float(coords[0]), float(coords[1])
        magnitude = float(mag)
        if magnitude < self.min_magnitude or not self.in_area(lat, lon):
            return None

        depth = float(coords[2]) if len(coords) > 2 and coords[2] is not None else None
        return CandidateEvent(
            id=f"earthquake_{feature['id']}",
            type="earthquake",
            severity=earthquake_severity(magnitude),
            latitude=lat,
            longitude=lon,
            timestamp=from_epoch_ms(props["time"]),
            description=f"{magnitude} magnitude earthquake {props.get('place') or ''}".rstrip(),
            source=self.source_id,
            magnitude=magnitude,
            depth=depth,
        )

    async def close(self):
        await self.client.close()
