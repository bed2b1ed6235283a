"""HTTP client for a running termbridge endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ToolClient:
    """Calls terminal tools on a termbridge endpoint over HTTP.

    Example usage::

        async with ToolClient(base_url="http://127.0.0.1:3001") as client:
            result = await client.call("exec_command", command="uname -a")
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:3001",
        timeout: float = 310.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the HTTP client and verify endpoint connectivity."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        try:
            resp = await self._client.get("/health")
            resp.raise_for_status()
            logger.info("Connected to endpoint at %s", self._base_url)
        except Exception as e:
            await self._client.aclose()
            self._client = None
            raise ToolClientError(f"Failed to connect to endpoint: {e}") from e

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from endpoint")

    async def call(self, tool: str, **params: Any) -> Any:
        """Invoke ``tool``; ``None`` parameters are left out of the request."""
        payload = {k: v for k, v in params.items() if v is not None}
        resp = await self._request("POST", f"/tools/{tool}", json=payload)
        logger.debug("Called %s", tool)
        return resp.json()

    async def list_tools(self) -> list[dict[str, Any]]:
        resp = await self._request("GET", "/tools")
        return resp.json()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if self._client is None:
            raise ToolClientError("Not connected to endpoint")
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            detail = e.response.text
            raise ToolClientError(
                f"{method} {path} failed ({e.response.status_code}): {detail}"
            ) from e
        except httpx.HTTPError as e:
            raise ToolClientError(f"HTTP request to {path} failed: {e}") from e

    async def __aenter__(self) -> ToolClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.disconnect()


class ToolClientError(Exception):
    """Raised when a call to the endpoint fails."""
