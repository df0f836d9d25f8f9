"""
USGS Earthquake Hazards Program real-time GeoJSON feed client.

Feed documentation: https://earthquake.usgs.gov/earthquakes/feed/v1.0/geojson.php
Authentication: None required
"""

from typing import Any

import httpx

from eurohazard.clients.base_client import BaseAPIClient
from eurohazard.config import Settings


class USGSClient(BaseAPIClient):
    """USGS earthquake summary feed client."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(
            base_url=settings.usgs_base_url,
            timeout=settings.usgs_timeout,
            max_attempts=settings.http_max_attempts,
            transport=transport,
        )
        self._feed_path = settings.usgs_feed_path

    async def get_feed(self) -> dict[str, Any]:
        """
        Get the summary feed (all magnitudes, past day by default).

        Returns:
            GeoJSON FeatureCollection. Each feature carries
            ``geometry.coordinates = [lon, lat, depth_km]`` and
            ``properties.mag/place/time/...``; ``id`` is the USGS event id.
        """
        return await self.get(self._feed_path)
