"""
In-process notification hub.

Subscribers attach to named channels (the global channel or one channel per
region bucket) and drain messages from a bounded queue. Delivery is best
effort: a full queue drops its oldest message, and no publish failure ever
reaches the caller.
"""

import asyncio
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

import structlog

from eurohazard.models import DisasterEvent, RiskPrediction
from eurohazard.services.regions import BoundingBox, region_channel, resolve_region

logger = structlog.get_logger()

GLOBAL_CHANNEL = "global"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class Subscription:
    """A subscriber's handle on one or more channels."""

    def __init__(self, broadcaster: "Broadcaster", maxsize: int):
        self._broadcaster = broadcaster
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=maxsize)
        self.channels: set[str] = set()
        self.dropped = 0

    def join(self, channel: str):
        self._broadcaster._attach(self, channel)

    def leave(self, channel: str):
        self._broadcaster._detach(self, channel)

    def close(self):
        for channel in list(self.channels):
            self._broadcaster._detach(self, channel)

    def deliver(self, message: dict[str, Any]):
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(message)

    async def get(self) -> dict[str, Any]:
        return await self.queue.get()

    def __aiter__(self):
        return self

    async def __anext__(self) -> dict[str, Any]:
        return await self.queue.get()


class Broadcaster:
    def __init__(self, aoi: BoundingBox | None = None, queue_size: int = 100, high_risk_threshold: float = 70.0):
        self.aoi = aoi
        self.queue_size = queue_size
        self.high_risk_threshold = high_risk_threshold
        self._channels: dict[str, set[Subscription]] = defaultdict(set)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, *channels: str) -> Subscription:
        subscription = Subscription(self, self.queue_size)
        for channel in channels:
            subscription.join(channel)
        return subscription

    def unsubscribe(self, subscription: Subscription):
        subscription.close()

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    def _attach(self, subscription: Subscription, channel: str):
        self._channels[channel].add(subscription)
        subscription.channels.add(channel)

    def _detach(self, subscription: Subscription, channel: str):
        subscribers = self._channels.get(channel)
        if subscribers is not None:
            subscribers.discard(subscription)
            if not subscribers:
                del self._channels[channel]
        subscription.channels.discard(channel)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, channel: str, message: dict[str, Any]) -> int:
        """Deliver to every subscriber of ``channel``. Returns the delivery count."""
        delivered = 0
        for subscription in list(self._channels.get(channel, ())):
            try:
                subscription.deliver(message)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Broadcast delivery failed",
                    channel=channel,
                    message_type=message.get("type"),
                    error=str(e),
                )
        return delivered

    def broadcast_events(self, events: list[DisasterEvent]):
        """One global ``new_disasters`` message, then a ``regional_alert`` per event."""
        if not events:
            return
        try:
            payload = [event.to_dict() for event in events]
            self.publish(
                GLOBAL_CHANNEL,
                {"type": "new_disasters", "data": payload, "timestamp": _timestamp()},
            )
            for event, data in zip(events, payload):
                region = resolve_region(event.latitude, event.longitude, self.aoi)
                self.publish(
                    region_channel(region),
                    {"type": "regional_alert", "disaster": data, "timestamp": _timestamp()},
                )
        except Exception as e:
            logger.error("Failed to broadcast disaster events", count=len(events), error=str(e))

    def broadcast_predictions(self, predictions: list[RiskPrediction]):
        """``risk_predictions`` to everyone, plus ``high_risk_alert`` above the threshold."""
        if not predictions:
            return
        try:
            payload = [p.to_dict() for p in predictions]
            self.publish(
                GLOBAL_CHANNEL,
                {"type": "risk_predictions", "data": payload, "timestamp": _timestamp()},
            )

            high_risk = [p for p in payload if p["risk_score"] > self.high_risk_threshold]
            if high_risk:
                self.publish(
                    GLOBAL_CHANNEL,
                    {"type": "high_risk_alert", "predictions": high_risk, "timestamp": _timestamp()},
                )
                logger.info("High risk alert broadcast", count=len(high_risk))
        except Exception as e:
            logger.error("Failed to broadcast risk predictions", count=len(predictions), error=str(e))
