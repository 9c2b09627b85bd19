from datetime import datetime, timedelta, timezone
import hashlib
import random

from cryptotracker.errors import NotFoundError
from cryptotracker.providers.base import MarketDataProvider
from cryptotracker.providers.catalog import OFFLINE_MARKET

MARKET_BY_SLUG = {item["slug"]: item for item in OFFLINE_MARKET}
MARKET_BY_CMC_ID = {str(item["cmc_id"]): item for item in OFFLINE_MARKET}


def _rng(*parts: object) -> random.Random:
    seed_material = ":".join(str(p) for p in parts).encode("utf-8")
    seed = int(hashlib.sha256(seed_material).hexdigest(), 16) % (10**8)
    return random.Random(seed)


def _iso(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S.000Z")


class MockMarketDataProvider(MarketDataProvider):
    """Offline market with the same payload shape as CoinMarketCap."""

    name = "mock"

    def __init__(self, clock=None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def fetch_listings_payload(self, limit: int = 10, start: int = 1, convert: str = "USD") -> dict:
        now = self._clock()
        minute = int(now.timestamp() // 60)
        records = []
        for rank, coin in enumerate(OFFLINE_MARKET, start=1):
            if rank < start:
                continue
            if len(records) >= limit:
                break
            rng = _rng(coin["slug"], minute)
            jitter = rng.uniform(-0.004, 0.004)
            records.append(
                {
                    "id": coin["cmc_id"],
                    "name": coin["name"],
                    "symbol": coin["symbol"],
                    "slug": coin["slug"],
                    "cmc_rank": rank,
                    "last_updated": _iso(now),
                    "quote": {
                        convert: {
                            "price": round(coin["price"] * (1 + jitter), 6),
                            "volume_24h": coin["volume_24h"],
                            "percent_change_24h": round(coin["percent_change_24h"] + jitter * 100, 2),
                            "market_cap": round(coin["market_cap"] * (1 + jitter), 2),
                        }
                    },
                }
            )
        return {"status": {"error_code": 0, "error_message": None}, "data": records}

    async def fetch_history_payload(
        self, asset_id: str, lookback_days: int, convert: str = "USD", interval: str = "daily"
    ) -> dict:
        coin = MARKET_BY_SLUG.get(asset_id) or MARKET_BY_CMC_ID.get(asset_id)
        if coin is None:
            raise NotFoundError(f"unknown cryptocurrency {asset_id!r}")

        step = timedelta(hours=1) if interval == "hourly" else timedelta(days=1)
        count = lookback_days * 24 if interval == "hourly" else lookback_days
        now = self._clock().replace(minute=0, second=0, microsecond=0)
        rng = _rng(coin["slug"], interval, now.date().toordinal())

        # Walk backwards from today's price so the newest quote matches the listing.
        price = coin["price"]
        quotes = []
        for i in range(count):
            moment = now - step * i
            quotes.append({"timestamp": _iso(moment), "quote": {convert: {"price": round(price, 6), "timestamp": _iso(moment)}}})
            price = max(price * 0.0001, price * (1 + rng.uniform(-0.01, 0.01)))
        quotes.reverse()

        return {
            "status": {"error_code": 0, "error_message": None},
            "data": {"id": coin["cmc_id"], "name": coin["name"], "symbol": coin["symbol"], "quotes": quotes},
        }
