"""
HTTP transport for the batch reconciliation call.

One POST per cycle to ``{api_url}/sync/queue/``. Any failure of the call as a
whole (connection error, timeout, non-2xx status, undecodable body) is raised
as NetworkError; the engine treats that as "nothing happened".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import aiohttp

from .exceptions import NetworkError

logger = logging.getLogger(__name__)


class BatchTransport(Protocol):
    async def send_batch(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]: ...


class HttpBatchTransport:
    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        timeout: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}/sync/queue/"
        self._access_token = access_token
        # total=None: no client-imposed limit unless one is configured
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    async def send_batch(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Submit one batch and return the per-item result objects.

        Raises:
            NetworkError: If the call fails as a whole
        """
        session = self._get_session()
        logger.debug(f"POST {self.url} with {len(items)} item(s)")

        try:
            async with session.post(self.url, json={"items": items}, headers=self._headers()) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    raise NetworkError(f"Sync endpoint returned HTTP {response.status}: {body[:200]}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Sync request failed: {e.__class__.__name__}: {e}") from e
        except ValueError as e:
            raise NetworkError(f"Sync endpoint returned an undecodable body: {e}") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise NetworkError("Sync response has no results list")
        return results

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
