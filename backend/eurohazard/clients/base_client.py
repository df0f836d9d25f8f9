"""Base async HTTP client with bounded connection retry."""

from typing import Any

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()


class BaseAPIClient:
    """
    Async HTTP client base using httpx.AsyncClient.
    Features: configurable headers, per-client timeout, retry on connection
    failures only. Non-2xx responses raise immediately; the caller's schedule
    is the retry for those.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        max_attempts: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self._headers = headers or {}
        self._timeout = timeout
        self._max_attempts = max(1, max_attempts)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        retrying = retry(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(min=0.5, max=5),
            retry=retry_if_exception_type((httpx.ConnectError, httpx.ConnectTimeout)),
            reraise=True,
        )
        return await retrying(self._send)(method, path, params)

    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None,
    ) -> httpx.Response:
        client = await self._get_client()

        logger.debug("API request", method=method, base_url=self.base_url, path=path)

        response = await client.request(method, path, params=params)

        logger.debug(
            "API response",
            method=method,
            path=path,
            status=response.status_code,
        )

        response.raise_for_status()
        return response

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._request("GET", path, params=params)
        return response.json()

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
