from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from slippage_collector.common import log_event

from .gate import RateLimitGate
from .types import QuotePayloadError, QuoteStatusError, QuoteTransportError

DEFAULT_QUOTE_API_BASE_URL = "https://api.1inch.io/v5.0"


def _body_preview(text: str, *, limit: int = 240) -> str:
    return (text or "")[:limit]


class QuoteApiClient:
    """HTTP transport for the aggregator quote API.

    Every request is paced by the shared :class:`RateLimitGate`. There is no
    retry: any transport failure or non-200 status is raised to the caller.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        gate: RateLimitGate,
        api_base_url: str = DEFAULT_QUOTE_API_BASE_URL,
        api_key: str | None = None,
        timeout_seconds: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._logger = logger
        self._gate = gate
        self._api_base_url = api_base_url.rstrip("/")
        self._api_key = api_key.strip() if api_key else ""
        self._timeout_seconds = max(1.0, float(timeout_seconds))
        self._session = session
        self._owns_session = session is None
        self._request_count = 0

    @property
    def request_count(self) -> int:
        return self._request_count

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": "slippage-collector/1.0",
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def build_url(self, chain_id: int, method: str) -> str:
        return f"{self._api_base_url}/{chain_id}/{method.strip('/')}"

    async def connect(self) -> None:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def request(
        self,
        chain_id: int,
        method: str,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        if self._session is None:
            await self.connect()
        if self._session is None:
            raise RuntimeError("Quote API HTTP session is not initialized.")

        url = self.build_url(chain_id, method)
        query = dict(params or {})

        async def send() -> tuple[int, str, str]:
            self._request_count += 1
            async with self._session.get(url, params=query, headers=self._build_headers()) as response:
                return response.status, response.reason or "", await response.text()

        try:
            status, reason, body = await self._gate.call(send)
        except (aiohttp.ClientError, asyncio.TimeoutError) as error:
            log_event(
                self._logger,
                level="error",
                event="quote_request_failed",
                message=f"{url} failed: {error}",
                url=url,
                error=str(error),
            )
            raise QuoteTransportError(f"{url} failed: {error}", url=url) from error

        if status != 200:
            log_event(
                self._logger,
                level="error",
                event="quote_request_bad_status",
                message=f"{url} returned {status}: {reason}",
                url=url,
                status=status,
                reason=reason,
                body_preview=_body_preview(body),
            )
            raise QuoteStatusError(
                f"{url} returned {status}: {reason}",
                url=url,
                status=status,
                reason=reason,
            )

        try:
            payload = json.loads(body)
        except json.JSONDecodeError as error:
            raise QuotePayloadError(
                f"{url} returned a non-JSON body: {_body_preview(body)!r}"
            ) from error
        if not isinstance(payload, dict):
            raise QuotePayloadError(f"{url} returned unexpected payload type {type(payload).__name__}")
        return payload
