"""
RiskEngine -- per-region, per-hazard risk scores from historical samples.

Factors (each derived from the latest samples for the key, weighted):
    Frequency        20%  Samples per day over the sampled timespan.
    Severity         25%  Mean severity tier (low=1 .. critical=4).
    Seasonal         25%  Share of samples within a month of today's month.
    Weather          20%  Fixed per-hazard weather sensitivity.
    Recent activity  10%  Share of samples in the trailing 30 days.

The weighted mean is scaled to 0-80 and squashed through a logistic curve, so
a statistical score never exceeds 80. Keys without any history get a baseline
score from a static table plus a seasonal bump, with low confidence.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime, timedelta

import structlog

from eurohazard.config import Settings
from eurohazard.models import HistoricalSample, RiskPrediction
from eurohazard.services.broadcaster import Broadcaster
from eurohazard.services.regions import RISK_REGIONS
from eurohazard.services.store import Store
from eurohazard.utils.date_helpers import utc_now

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

RISK_HAZARD_TYPES: list[str] = ["earthquake", "wildfire", "flood", "weather"]

SEVERITY_WEIGHTS: dict[str, int] = {
    "critical": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
}

# How strongly each hazard responds to weather; not derived from data
WEATHER_SENSITIVITY: dict[str, float] = {
    "earthquake": 0.1,
    "wildfire": 0.8,
    "flood": 0.9,
    "weather": 1.0,
}
DEFAULT_WEATHER_SENSITIVITY = 0.5

BASELINE_RISKS: dict[str, dict[str, float]] = {
    "EU": {"earthquake": 12, "wildfire": 18, "flood": 22, "weather": 28},
    "UK": {"earthquake": 8, "wildfire": 12, "flood": 35, "weather": 42},
    "DE": {"earthquake": 10, "wildfire": 15, "flood": 32, "weather": 28},
    "FR": {"earthquake": 18, "wildfire": 22, "flood": 25, "weather": 20},
    "IT": {"earthquake": 28, "wildfire": 25, "flood": 18, "weather": 22},
    "ES": {"earthquake": 22, "wildfire": 35, "flood": 15, "weather": 28},
    "NL": {"earthquake": 6, "wildfire": 8, "flood": 38, "weather": 32},
    "AT": {"earthquake": 25, "wildfire": 15, "flood": 22, "weather": 18},
    "CH": {"earthquake": 22, "wildfire": 12, "flood": 18, "weather": 15},
    "PL": {"earthquake": 15, "wildfire": 18, "flood": 25, "weather": 22},
    "GR": {"earthquake": 32, "wildfire": 28, "flood": 12, "weather": 22},
    "PT": {"earthquake": 25, "wildfire": 28, "flood": 18, "weather": 25},
    "BE": {"earthquake": 8, "wildfire": 12, "flood": 32, "weather": 28},
    "SE": {"earthquake": 12, "wildfire": 15, "flood": 22, "weather": 18},
    "NO": {"earthquake": 15, "wildfire": 12, "flood": 25, "weather": 22},
    "DK": {"earthquake": 8, "wildfire": 8, "flood": 28, "weather": 25},
    "FI": {"earthquake": 12, "wildfire": 15, "flood": 22, "weather": 18},
}
DEFAULT_BASELINE_RISK = 30.0

RECENT_ACTIVITY_DAYS = 30

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp *value* to [lo, hi]."""
    return max(lo, min(hi, value))


def _variance(values: list[float]) -> float:
    """Population variance."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def seasonal_adjustment(hazard_type: str, month_index: int) -> float:
    """Seasonal bump for baseline scores.

    ``month_index`` is zero-based (January = 0): wildfire peaks Jun-Sep,
    flood Mar-Jun, weather Dec-Mar.
    """
    if hazard_type == "wildfire" and 5 <= month_index <= 8:
        return 8.0
    if hazard_type == "flood" and 2 <= month_index <= 5:
        return 6.0
    if hazard_type == "weather" and (month_index >= 11 or month_index <= 2):
        return 7.0
    return 0.0


def timespan_days(samples: list[HistoricalSample]) -> float:
    """Days between the oldest and newest sample, at least 1.

    Assumes ``samples`` is ordered newest first.
    """
    if len(samples) < 2:
        return 1.0
    newest = samples[0].timestamp
    oldest = samples[-1].timestamp
    return max((newest - oldest).total_seconds() / 86400.0, 1.0)


def compute_factors(
    samples: list[HistoricalSample],
    hazard_type: str,
    now: datetime,
) -> dict[str, float]:
    """Five risk factors for a non-empty, newest-first sample list."""
    count = len(samples)
    current_month = now.month

    severity_total = sum(SEVERITY_WEIGHTS.get(s.severity, 0) for s in samples)
    seasonal = sum(1 for s in samples if abs(s.timestamp.month - current_month) <= 1)
    recent_cutoff = now - timedelta(days=RECENT_ACTIVITY_DAYS)
    recent = sum(1 for s in samples if s.timestamp >= recent_cutoff)

    return {
        "frequency": count / max(timespan_days(samples), 1.0),
        "severity": severity_total / count,
        "seasonal": seasonal / count,
        "weather": WEATHER_SENSITIVITY.get(hazard_type, DEFAULT_WEATHER_SENSITIVITY),
        "recent_activity": recent / count,
    }


# ---------------------------------------------------------------------------
# RiskEngine
# ---------------------------------------------------------------------------


class RiskEngine:
    """Compute, persist and broadcast risk predictions for every region/hazard pair."""

    DEFAULT_WEIGHTS: dict[str, float] = {
        "frequency": 0.20,
        "severity": 0.25,
        "seasonal": 0.25,
        "weather": 0.20,
        "recent_activity": 0.10,
    }

    def __init__(
        self,
        store: Store,
        broadcaster: Broadcaster,
        settings: Settings,
        regions: list[str] | None = None,
        hazard_types: list[str] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.broadcaster = broadcaster
        self.weights = dict(self.DEFAULT_WEIGHTS)
        self.regions = regions if regions is not None else list(RISK_REGIONS)
        self.hazard_types = hazard_types if hazard_types is not None else list(RISK_HAZARD_TYPES)
        self.history_limit = settings.risk_history_limit
        self.squash_center = settings.risk_squash_center
        self.squash_slope = settings.risk_squash_slope
        self.score_ceiling = settings.risk_score_ceiling
        self.baseline_confidence = settings.baseline_confidence
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> list[RiskPrediction]:
        """Score every pair once, persist each result and broadcast the batch.

        A pair whose computation or write fails is logged and left out; the
        remaining pairs still run.
        """
        persisted: list[RiskPrediction] = []

        for region in self.regions:
            for hazard_type in self.hazard_types:
                try:
                    values = await self.predict(region, hazard_type)
                except Exception as e:
                    logger.error(
                        "risk.prediction_failed",
                        region=region,
                        disaster_type=hazard_type,
                        error=str(e),
                    )
                    continue

                try:
                    persisted.append(await self.store.add_prediction(values))
                except Exception as e:
                    logger.warning(
                        "risk.persist_failed",
                        region=region,
                        disaster_type=hazard_type,
                        error=str(e),
                    )

        if persisted:
            self.broadcaster.broadcast_predictions(persisted)
            logger.info("risk.run_complete", predictions=len(persisted))
        else:
            logger.warning("risk.run_empty")

        return persisted

    async def predict(self, region: str, hazard_type: str) -> dict:
        """Prediction values for one pair (statistical or baseline)."""
        now = self._clock()
        samples = await self.store.recent_samples(region, hazard_type, limit=self.history_limit)

        if not samples:
            return self.baseline_prediction(region, hazard_type, now)

        factors = compute_factors(samples, hazard_type, now)
        return {
            "region": region,
            "disaster_type": hazard_type,
            "risk_score": self.score(factors),
            "confidence": self.confidence(len(samples), factors),
            "factors": factors,
            "predicted_at": now,
        }

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score(self, factors: dict[str, float]) -> float:
        """Weighted factor mean, scaled to the ceiling, then logistic-squashed."""
        weighted = 0.0
        total_weight = 0.0
        for name, value in factors.items():
            weight = self.weights.get(name)
            if weight:
                weighted += value * weight
                total_weight += weight

        raw = (weighted / total_weight) * self.score_ceiling if total_weight else 0.0
        exponent = -(raw - self.squash_center) / self.squash_slope
        if exponent > 700:  # math.exp overflow; the curve is at its floor
            squashed = 0.0
        else:
            squashed = self.score_ceiling / (1.0 + math.exp(exponent))
        return _clamp(squashed, 0.0, self.score_ceiling)

    @staticmethod
    def confidence(sample_count: int, factors: dict[str, float]) -> float:
        """Up to 0.6 from sample volume, up to 0.4 from factor consistency."""
        volume = min(sample_count / 50.0, 1.0) * 0.6
        consistency = (1.0 - _variance(list(factors.values()))) * 0.4
        return _clamp(volume + consistency, 0.0, 1.0)

    def baseline_prediction(self, region: str, hazard_type: str, now: datetime) -> dict:
        base = BASELINE_RISKS.get(region, {}).get(hazard_type, DEFAULT_BASELINE_RISK)
        adjustment = seasonal_adjustment(hazard_type, now.month - 1)
        return {
            "region": region,
            "disaster_type": hazard_type,
            "risk_score": _clamp(base + adjustment),
            "confidence": _clamp(self.baseline_confidence, 0.0, 1.0),
            "factors": {
                "baseline_risk": base,
                "seasonal_adjustment": adjustment,
                "prediction_type": "baseline",
            },
            "predicted_at": now,
        }
