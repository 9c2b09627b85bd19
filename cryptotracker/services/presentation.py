from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence

from cryptotracker.providers.base import AssetIcon, AssetQuote, KnownAsset
from cryptotracker.services.history import HistorySeries
from cryptotracker.services.selection import Timeframe

APP_TITLE = "CryptoTracker"


@dataclass
class ChangeView:
    text: str
    direction: str
    arrow: str


@dataclass
class AssetRow:
    id: str
    name: str
    symbol: str
    rank: int
    price_text: str
    change: ChangeView
    image: str
    icon: dict
    selected: bool = False


@dataclass
class AssetCard:
    id: str
    name: str
    symbol: str
    icon: dict
    price_text: str
    change: ChangeView
    period_label: str
    market_cap_text: str
    market_cap_rank: Optional[int]
    volume_text: str
    volume_share_text: str
    currency: str


@dataclass
class ChartPoint:
    timestamp: int
    label: str
    price: float
    price_text: str


@dataclass
class ChartView:
    asset_id: str
    timeframe: str
    trend: str
    pending: bool
    synthetic: bool
    points: list[ChartPoint] = field(default_factory=list)


@dataclass
class ViewMetadata:
    title: str


def format_currency(value: float) -> str:
    if 0 < abs(value) < 0.01:
        return "$" + f"{value:,.6f}".rstrip("0")
    return f"${value:,.2f}"


def format_billions(value: float) -> str:
    return f"${value / 1_000_000_000:,.2f}B"


def format_axis_price(value: float) -> str:
    return f"${round(value):,}"


def format_change(pct: float) -> ChangeView:
    if pct >= 0:
        return ChangeView(text=f"{abs(pct):.2f}%", direction="up", arrow="▲")
    return ChangeView(text=f"{abs(pct):.2f}%", direction="down", arrow="▼")


def icon_view(icon: Optional[AssetIcon], symbol: str) -> dict:
    if isinstance(icon, KnownAsset):
        return {"kind": "known", "variant": icon.variant, "color": icon.color}
    text = icon.symbol_text if icon is not None else symbol[:3].upper()
    return {"kind": "unknown", "text": text}


def format_axis_label(timestamp_ms: int, timeframe: Timeframe) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    if timeframe == Timeframe.H24:
        return f"{moment:%H:%M}"
    if timeframe in (Timeframe.D7, Timeframe.D30):
        return f"{moment:%b} {moment.day}"
    return f"{moment:%b %y}"


def asset_row(quote: AssetQuote, selected_id: Optional[str] = None) -> AssetRow:
    return AssetRow(
        id=quote.id,
        name=quote.name,
        symbol=quote.symbol.upper(),
        rank=quote.rank,
        price_text=format_currency(quote.current_price),
        change=format_change(quote.price_change_percentage_24h),
        image=quote.image,
        icon=icon_view(quote.icon, quote.symbol),
        selected=quote.id == selected_id,
    )


def ranked_rows(snapshot: Sequence[AssetQuote], selected_id: Optional[str] = None, limit: int = 5) -> list[AssetRow]:
    return [asset_row(q, selected_id) for q in snapshot[:limit]]


def watchlist_rows(watchlist: Sequence[AssetQuote], selected_id: Optional[str] = None) -> list[AssetRow]:
    return [asset_row(q, selected_id) for q in watchlist]


def asset_card(quote: AssetQuote, snapshot: Sequence[AssetQuote], timeframe: Timeframe, currency: str = "USD") -> AssetCard:
    # Rank is the position in the current snapshot, matching the list the user sees.
    position = next((i for i, q in enumerate(snapshot, start=1) if q.id == quote.id), None)
    share = (quote.total_volume / quote.market_cap) * 100 if quote.market_cap else 0.0
    return AssetCard(
        id=quote.id,
        name=quote.name,
        symbol=quote.symbol.upper(),
        icon=icon_view(quote.icon, quote.symbol),
        price_text=format_currency(quote.current_price),
        change=format_change(quote.price_change_percentage_24h),
        period_label=f"Past {timeframe.value}",
        market_cap_text=format_billions(quote.market_cap),
        market_cap_rank=position,
        volume_text=format_billions(quote.total_volume),
        volume_share_text=f"{share:.2f}% of market cap",
        currency=currency,
    )


def chart_view(
    series: Optional[HistorySeries], asset: AssetQuote, timeframe: Timeframe
) -> ChartView:
    trend = "positive" if asset.price_change_percentage_24h >= 0 else "negative"
    if series is None:
        return ChartView(asset_id=asset.id, timeframe=timeframe.value, trend=trend, pending=True, synthetic=False)

    points = [
        ChartPoint(
            timestamp=p.timestamp,
            label=format_axis_label(p.timestamp, series.timeframe),
            price=p.price,
            price_text=format_axis_price(p.price),
        )
        for p in series.points
    ]
    return ChartView(
        asset_id=series.asset_id,
        timeframe=series.timeframe.value,
        trend=trend,
        pending=False,
        synthetic=series.synthetic,
        points=points,
    )


def view_metadata(watchlist: Sequence[AssetQuote]) -> ViewMetadata:
    names = ", ".join(q.name for q in watchlist)
    return ViewMetadata(title=f"{APP_TITLE} - {names}" if names else APP_TITLE)
