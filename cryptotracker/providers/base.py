from dataclasses import dataclass
from typing import Optional, Union

from cryptotracker.errors import ValidationError

SUPPORTED_CURRENCIES = frozenset({"USD", "EUR", "GBP", "JPY", "AUD", "CAD", "CHF", "CNY", "KRW", "INR", "BRL"})
HISTORY_INTERVALS = ("hourly", "daily")
PLACEHOLDER_IMAGE = "/placeholder.svg?height=32&width=32"


@dataclass(frozen=True)
class KnownAsset:
    variant: str
    color: str


@dataclass(frozen=True)
class UnknownAsset:
    symbol_text: str


AssetIcon = Union[KnownAsset, UnknownAsset]


@dataclass(frozen=True)
class AssetQuote:
    id: str
    name: str
    symbol: str
    current_price: float
    price_change_percentage_24h: float
    market_cap: float
    total_volume: float
    rank: int
    image: str = PLACEHOLDER_IMAGE
    icon: Optional[AssetIcon] = None
    provider_ref: Optional[str] = None


@dataclass(frozen=True)
class HistoryPoint:
    timestamp: int
    price: float


def check_listing_params(limit: int, start: int, convert: str) -> str:
    if limit < 1:
        raise ValidationError(f"limit must be >= 1, got {limit}")
    if start < 1:
        raise ValidationError(f"start must be >= 1, got {start}")
    return check_currency(convert)


def check_history_params(asset_id: str, lookback_days: int, convert: str, interval: str) -> str:
    if not asset_id or not asset_id.strip():
        raise ValidationError("Cryptocurrency ID is required")
    if lookback_days < 1:
        raise ValidationError(f"lookback_days must be >= 1, got {lookback_days}")
    if interval not in HISTORY_INTERVALS:
        raise ValidationError(f"interval must be one of {', '.join(HISTORY_INTERVALS)}, got {interval!r}")
    return check_currency(convert)


def check_currency(convert: str) -> str:
    code = (convert or "").upper()
    if code not in SUPPORTED_CURRENCIES:
        raise ValidationError(f"unsupported currency {convert!r}")
    return code


class MarketDataProvider:
    """Gateway to an upstream market-data source.

    Subclasses supply the provider-native payloads; the normalized methods
    validate parameters before anything is sent and flatten the payloads into
    ``AssetQuote`` / ``HistoryPoint`` records. Errors are raised, never
    recovered here.
    """

    name = "base"

    async def fetch_listings_payload(self, limit: int = 10, start: int = 1, convert: str = "USD") -> dict:
        raise NotImplementedError

    async def fetch_history_payload(
        self, asset_id: str, lookback_days: int, convert: str = "USD", interval: str = "daily"
    ) -> dict:
        raise NotImplementedError

    async def fetch_listings(self, limit: int = 10, start: int = 1, convert: str = "USD") -> list[AssetQuote]:
        from cryptotracker.providers.normalize import parse_listings

        convert = check_listing_params(limit, start, convert)
        payload = await self.fetch_listings_payload(limit=limit, start=start, convert=convert)
        return parse_listings(payload, convert=convert, start=start)

    async def fetch_history(
        self, asset_id: str, lookback_days: int, convert: str = "USD", interval: str = "daily"
    ) -> list[HistoryPoint]:
        from cryptotracker.providers.normalize import parse_history

        convert = check_history_params(asset_id, lookback_days, convert, interval)
        payload = await self.fetch_history_payload(asset_id, lookback_days, convert=convert, interval=interval)
        return parse_history(payload, convert=convert)

    async def aclose(self) -> None:
        return None
