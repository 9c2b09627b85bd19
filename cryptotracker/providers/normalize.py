"""Flatten CoinMarketCap-shaped payloads into internal records.

Listings arrive as ``{"data": [record, ...]}`` where each record nests its
market figures under ``quote.<CURRENCY>``. Historical quotes arrive either as
``{"data": {"quotes": [...]}}`` (single asset), ``{"data": {"<id>": {...}}}``
or ``{"data": {"<id>": [{...}]}}`` depending on the API version.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Optional

from cryptotracker.errors import UpstreamError
from cryptotracker.providers.base import PLACEHOLDER_IMAGE, AssetQuote, HistoryPoint
from cryptotracker.providers.catalog import resolve_icon

logger = logging.getLogger(__name__)

LOGO_URL = "https://s2.coinmarketcap.com/static/img/coins/64x64/{ref}.png"


def _number(value: Any, field: str, default: Optional[float] = None) -> float:
    if value is None:
        if default is None:
            raise UpstreamError(f"missing numeric field {field!r}")
        return default
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise UpstreamError(f"non-numeric value for {field!r}: {value!r}") from exc
    return number


def normalize_listing(record: dict, convert: str, position: int) -> AssetQuote:
    try:
        quote = record["quote"][convert]
        name = str(record["name"])
        symbol = str(record["symbol"])
    except (KeyError, TypeError) as exc:
        raise UpstreamError(f"malformed listing record: missing {exc}") from exc
    if not isinstance(quote, dict):
        raise UpstreamError(f"listing quote for {convert} is not an object: {quote!r}")

    provider_ref = record.get("id")
    asset_id = record.get("slug") or (str(provider_ref) if provider_ref is not None else None)
    if not asset_id:
        raise UpstreamError(f"listing record for {name} has no identifier")

    price = _number(quote.get("price"), "price")
    if price < 0:
        raise UpstreamError(f"negative price for {asset_id}: {price}")

    rank = record.get("cmc_rank")
    try:
        rank = int(rank) if rank is not None else position
    except (TypeError, ValueError):
        rank = position

    return AssetQuote(
        id=str(asset_id),
        name=name,
        symbol=symbol.upper(),
        current_price=price,
        price_change_percentage_24h=_number(quote.get("percent_change_24h"), "percent_change_24h", 0.0),
        market_cap=max(0.0, _number(quote.get("market_cap"), "market_cap", 0.0)),
        total_volume=max(0.0, _number(quote.get("volume_24h"), "volume_24h", 0.0)),
        rank=rank if rank > 0 else position,
        image=LOGO_URL.format(ref=provider_ref) if provider_ref is not None else PLACEHOLDER_IMAGE,
        icon=resolve_icon(str(asset_id), symbol),
        provider_ref=str(provider_ref) if provider_ref is not None else None,
    )


def parse_listings(payload: Any, convert: str = "USD", start: int = 1) -> list[AssetQuote]:
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise UpstreamError("listings payload has no 'data' list")

    quotes: list[AssetQuote] = []
    seen: set[str] = set()
    for offset, record in enumerate(payload["data"]):
        if not isinstance(record, dict):
            raise UpstreamError(f"listing entry {offset} is not an object")
        quote = normalize_listing(record, convert, position=start + offset)
        if quote.id in seen:
            logger.warning("duplicate asset id %s in listings payload, keeping first", quote.id)
            continue
        seen.add(quote.id)
        quotes.append(quote)

    quotes.sort(key=lambda q: q.rank)
    return quotes


def _parse_timestamp(raw: Any) -> int:
    if isinstance(raw, (int, float)):
        return int(raw)
    if not isinstance(raw, str) or not raw:
        raise UpstreamError(f"bad history timestamp {raw!r}")
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise UpstreamError(f"bad history timestamp {raw!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def _extract_quotes(data: Any) -> list:
    if isinstance(data, dict) and isinstance(data.get("quotes"), list):
        return data["quotes"]
    if isinstance(data, dict) and len(data) == 1:
        inner = next(iter(data.values()))
        if isinstance(inner, list) and inner:
            inner = inner[0]
        if isinstance(inner, dict) and isinstance(inner.get("quotes"), list):
            return inner["quotes"]
    raise UpstreamError("history payload has no 'quotes' list")


def parse_history(payload: Any, convert: str = "USD") -> list[HistoryPoint]:
    if not isinstance(payload, dict) or "data" not in payload:
        raise UpstreamError("history payload has no 'data'")

    points: list[HistoryPoint] = []
    for entry in _extract_quotes(payload["data"]):
        if not isinstance(entry, dict):
            raise UpstreamError(f"history entry is not an object: {entry!r}")
        try:
            quote = entry["quote"][convert]
        except (KeyError, TypeError) as exc:
            raise UpstreamError(f"history entry missing quote for {convert}") from exc
        if not isinstance(quote, dict):
            raise UpstreamError(f"history quote for {convert} is not an object: {quote!r}")
        raw_ts = entry.get("timestamp") or quote.get("timestamp")
        price = _number(quote.get("price"), "price")
        points.append(HistoryPoint(timestamp=_parse_timestamp(raw_ts), price=max(0.0, price)))

    points.sort(key=lambda p: p.timestamp)
    return points
