# backend_client.py
# Async client for the trading backend consumed by the dashboard.
# Usage example:
#   import asyncio
#   from backend_client import BackendClient
#   async def main():
#       async with BackendClient("http://127.0.0.1:4534") as client:
#           print(await client.get_account())
#   asyncio.run(main())

import logging
from typing import Any, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from models import (
    AccountSnapshot, ActivityEntry, ActivityFeed, AnalysisResult,
    IntelligenceReport, Position, TopicResult, TradeRecord,
)

logger = logging.getLogger("ygg.backend")

ENDPOINTS = {
    "account": "/account",
    "positions": "/options/positions",
    "activity": "/activity/current",
    "trades": "/trades",
    "intelligence": "/intelligence/quick-market",
    "analysis": "/intelligence/analyze/{symbol}",
    "topic": "/intelligence/topic",
}

_positions = TypeAdapter(List[Position])
_trades = TypeAdapter(List[TradeRecord])


class BackendError(Exception):
    """A backend call failed: transport error, bad status or unexpected payload."""

    def __init__(self, endpoint: str, message: str):
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint


class BackendClient:
    def __init__(self, base_url: str, api_prefix: str = "/api/v1", timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_prefix = api_prefix.rstrip("/")
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "BackendClient":
        return cls(settings.backend_url, settings.api_prefix, settings.request_timeout, transport=transport)

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get(self, endpoint: str, params: Optional[dict] = None, **path: str) -> Any:
        url = self.api_prefix + ENDPOINTS[endpoint].format(**path)
        try:
            resp = await self._http.get(url, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise BackendError(endpoint, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise BackendError(endpoint, str(e) or type(e).__name__) from e
        except ValueError as e:  # body was not JSON
            raise BackendError(endpoint, f"invalid JSON: {e}") from e

    async def _get_model(self, endpoint: str, parse, params: Optional[dict] = None, **path: str):
        data = await self._get(endpoint, params=params, **path)
        try:
            return parse(data)
        except ValidationError as e:
            raise BackendError(endpoint, f"unexpected payload ({e.error_count()} errors)") from e

    # --- fast cycle ---

    async def get_account(self) -> AccountSnapshot:
        return await self._get_model("account", AccountSnapshot.model_validate)

    async def get_positions(self) -> List[Position]:
        return await self._get_model("positions", lambda d: _positions.validate_python(d or []))

    async def get_activities(self) -> List[ActivityEntry]:
        feed = await self._get_model("activity", lambda d: ActivityFeed.model_validate(d or {}))
        return feed.activities

    async def get_trades(self) -> List[TradeRecord]:
        return await self._get_model("trades", lambda d: _trades.validate_python(d or []))

    # --- slow cycle ---

    async def get_intelligence(self) -> IntelligenceReport:
        return await self._get_model("intelligence", IntelligenceReport.model_validate)

    # --- search ---

    async def analyze_symbol(self, symbol: str) -> AnalysisResult:
        return await self._get_model("analysis", AnalysisResult.model_validate, symbol=symbol)

    async def analyze_topic(self, query: str) -> TopicResult:
        def parse(data):
            if isinstance(data, dict):
                data = {"query": query, **data}
            return TopicResult.model_validate(data)
        return await self._get_model("topic", parse, params={"q": query})
