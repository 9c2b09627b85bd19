import os

os.environ["PROVIDER_NAME"] = "mock"
os.environ["REFRESH_INTERVAL_SECONDS"] = "60"
os.environ["WATCHLIST"] = "bitcoin,ethereum,solana"
os.environ.setdefault("COINMARKETCAP_API_URL", "")
os.environ.setdefault("COINMARKETCAP_API_KEY", "")

import asyncio
from datetime import datetime, timezone

import pytest

from cryptotracker.errors import UpstreamError
from cryptotracker.providers.base import AssetQuote, MarketDataProvider


def make_quote(asset_id: str, rank: int = 1, price: float = 100.0, change: float = 1.0, name: str = "") -> AssetQuote:
    return AssetQuote(
        id=asset_id,
        name=name or asset_id.title(),
        symbol=asset_id[:3].upper(),
        current_price=price,
        price_change_percentage_24h=change,
        market_cap=price * 1_000_000,
        total_volume=price * 10_000,
        rank=rank,
    )


class FakeProvider(MarketDataProvider):
    """Scriptable gateway: queued listing results, optional gates to hold calls open."""

    name = "fake"

    def __init__(self) -> None:
        self.listing_results: list = []
        self.history_results: dict = {}
        self.listing_calls = 0
        self.history_calls: list[tuple[str, int, str]] = []
        self.listing_gate: asyncio.Event | None = None
        self.history_gates: dict[str, asyncio.Event] = {}

    async def fetch_listings(self, limit=10, start=1, convert="USD"):
        self.listing_calls += 1
        if self.listing_gate is not None:
            await self.listing_gate.wait()
        result = self.listing_results.pop(0) if self.listing_results else []
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def fetch_history(self, asset_id, lookback_days, convert="USD", interval="daily"):
        self.history_calls.append((asset_id, lookback_days, interval))
        gate = self.history_gates.get(asset_id)
        if gate is not None:
            await gate.wait()
        result = self.history_results.get(asset_id, UpstreamError("no history scripted"))
        if isinstance(result, Exception):
            raise result
        return list(result)


FIXED_NOW = datetime(2024, 3, 5, 14, 30, 15, tzinfo=timezone.utc)


@pytest.fixture()
def fake_provider():
    return FakeProvider()


@pytest.fixture()
def fixed_clock():
    return lambda: FIXED_NOW
