"""Weather adapter: current conditions for a fixed set of European localities."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from eurohazard.clients.openweather import OpenWeatherClient
from eurohazard.config import Settings
from eurohazard.sources.base import AbstractSource, CandidateEvent
from eurohazard.utils.date_helpers import epoch_ms, utc_now

logger = structlog.get_logger()

WEATHER_RADIUS = 50_000


@dataclass(frozen=True)
class Locality:
    name: str
    lat: float
    lon: float


LOCALITIES: list[Locality] = [
    Locality("London", 51.5074, -0.1278),
    Locality("Paris", 48.8566, 2.3522),
    Locality("Berlin", 52.5200, 13.4050),
    Locality("Rome", 41.9028, 12.4964),
    Locality("Madrid", 40.4168, -3.7038),
    Locality("Amsterdam", 52.3676, 4.9041),
    Locality("Vienna", 48.2082, 16.3738),
    Locality("Prague", 50.0755, 14.4378),
    Locality("Budapest", 47.4979, 19.0402),
    Locality("Warsaw", 52.2297, 21.0122),
]


@dataclass
class Conditions:
    """The slice of a current-weather payload the thresholds look at."""

    temp: float
    wind_speed: float
    main: str
    description: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Conditions":
        weather = (payload.get("weather") or [{}])[0]
        return cls(
            temp=float(payload["main"]["temp"]),
            wind_speed=float((payload.get("wind") or {}).get("speed") or 0.0),
            main=str(weather.get("main") or "").lower(),
            description=str(weather.get("description") or weather.get("main") or "unknown"),
        )


def is_severe(c: Conditions) -> bool:
    return (
        c.temp > 45
        or c.temp < -20
        or c.wind_speed > 30
        or "thunderstorm" in c.main
        or ("snow" in c.main and c.temp < -10)
        or ("rain" in c.main and c.wind_speed > 25)
    )


def weather_severity(c: Conditions) -> str:
    if c.temp > 45 or c.temp < -25 or c.wind_speed > 35 or "thunderstorm" in c.main:
        return "critical"
    if c.temp > 40 or c.temp < -20 or c.wind_speed > 25:
        return "high"
    return "medium"


class WeatherSource(AbstractSource):
    source_id = "OpenWeatherMap"

    def __init__(
        self,
        settings: Settings,
        client: OpenWeatherClient | None = None,
        localities: list[Locality] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(settings)
        self.client = client or OpenWeatherClient(settings)
        self.localities = localities if localities is not None else LOCALITIES
        self._clock = clock

    async def collect(self) -> list[CandidateEvent]:
        if not self.client.is_configured:
            logger.warning("OpenWeatherMap API key not configured, skipping weather alerts")
            return []

        candidates: list[CandidateEvent] = []
        for locality in self.localities:
            try:
                payload = await self.client.get_current(locality.lat, locality.lon)
                conditions = Conditions.from_payload(payload)
            except Exception as e:
                logger.warning(
                    "Failed to collect weather",
                    locality=locality.name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue

            if not is_severe(conditions):
                continue

            candidate = self._build_candidate(locality, conditions)
            candidates.append(candidate)
            logger.info(
                "Severe weather detected",
                locality=locality.name,
                severity=candidate.severity,
                condition=conditions.description,
            )
        return candidates

    def _build_candidate(self, locality: Locality, c: Conditions) -> CandidateEvent:
        now = self._clock()
        return CandidateEvent(
            id=f"weather_{locality.name}_{epoch_ms(now)}",
            type="weather",
            severity=weather_severity(c),
            latitude=locality.lat,
            longitude=locality.lon,
            timestamp=now,
            description=(
                f"Severe weather alert for {locality.name}: {c.description} "
                f"({c.temp}°C, {c.wind_speed} m/s)"
            ),
            source=self.source_id,
            radius=WEATHER_RADIUS,
            locality=locality.name,
        )

    async def close(self):
        await self.client.close()
