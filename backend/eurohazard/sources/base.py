"""
Abstract base class for hazard feed adapters.

Provides common functionality:
- Failure containment (fetch() never raises)
- Area-of-interest filtering
- Run logging
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

from eurohazard.config import Settings
from eurohazard.services.regions import BoundingBox, area_of_interest

logger = structlog.get_logger()


@dataclass
class CandidateEvent:
    """A normalized event produced by an adapter, not yet persisted."""

    id: str
    type: str
    severity: str
    latitude: float
    longitude: float
    timestamp: datetime
    description: str
    source: str
    magnitude: float | None = None
    depth: float | None = None
    radius: float | None = None
    locality: str | None = None

    @property
    def has_stable_id(self) -> bool:
        """Whether ``id`` comes from the provider (False for synthesized ids)."""
        return self.locality is None

    def to_values(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp,
            "description": self.description,
            "source": self.source,
            "magnitude": self.magnitude,
            "depth": self.depth,
            "radius": self.radius,
            "locality": self.locality,
        }


class AbstractSource(ABC):
    """
    Base class for all feed adapters.

    Subclasses must implement:
    - collect(): Query the provider and return normalized candidates
    """

    source_id: str = ""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.aoi: BoundingBox = area_of_interest(settings)

    @abstractmethod
    async def collect(self) -> list[CandidateEvent]:
        """
        Query the provider and return candidates inside the area of interest.
        May raise; fetch() contains the failure.
        """
        ...

    async def fetch(self) -> list[CandidateEvent]:
        """
        Main entry point. Never raises: upstream errors (timeout, non-2xx,
        malformed payload) are logged and yield an empty list.
        """
        started_at = datetime.now(timezone.utc)
        try:
            candidates = await self.collect()
        except Exception as e:
            logger.error(
                "Source fetch failed",
                source=self.source_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return []

        logger.info(
            "Source fetch complete",
            source=self.source_id,
            candidates=len(candidates),
            elapsed_s=round((datetime.now(timezone.utc) - started_at).total_seconds(), 2),
        )
        return candidates

    def in_area(self, lat: float, lon: float) -> bool:
        return self.aoi.contains(lat, lon)

    async def close(self):
        """Release provider clients. Override when the source owns any."""
        return None
