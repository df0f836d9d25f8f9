"""
NASA Earth Observatory Natural Event Tracker (EONET) v3 client.

API Documentation: https://eonet.gsfc.nasa.gov/docs/v3
Authentication: None required
"""

from typing import Any

import httpx

from eurohazard.clients.base_client import BaseAPIClient
from eurohazard.config import Settings


class EONETClient(BaseAPIClient):
    """EONET natural events client."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(
            base_url=settings.eonet_base_url,
            timeout=settings.eonet_timeout,
            max_attempts=settings.http_max_attempts,
            transport=transport,
        )

    async def get_events(
        self,
        limit: int = 30,
        days: int = 30,
        status: str = "open",
    ) -> list[dict[str, Any]]:
        """
        List natural events.

        Args:
            limit: Maximum number of events returned
            days: Only events active within the last N days
            status: "open", "closed" or "all"

        Returns:
            Event objects with ``categories`` and ``geometry`` lists
        """
        data = await self.get(
            "/api/v3/events",
            params={"limit": limit, "days": days, "status": status},
        )
        return data.get("events") or []
