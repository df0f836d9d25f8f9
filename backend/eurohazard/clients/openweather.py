"""
OpenWeatherMap current weather data client.

API Documentation: https://openweathermap.org/current
Authentication: ``appid`` query parameter
"""

from typing import Any

import httpx

from eurohazard.clients.base_client import BaseAPIClient
from eurohazard.config import Settings


class OpenWeatherClient(BaseAPIClient):
    """OpenWeatherMap current conditions client."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(
            base_url=settings.openweather_base_url,
            timeout=settings.openweather_timeout,
            max_attempts=settings.http_max_attempts,
            transport=transport,
        )
        self._api_key = settings.openweather_api_key

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def get_current(self, lat: float, lon: float) -> dict[str, Any]:
        """Current conditions at a position, metric units (°C, m/s)."""
        return await self.get(
            "/data/2.5/weather",
            params={
                "lat": lat,
                "lon": lon,
                "appid": self._api_key,
                "units": "metric",
            },
        )
