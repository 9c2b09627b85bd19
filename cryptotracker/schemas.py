from typing import Optional

from pydantic import BaseModel


class ChangeRead(BaseModel):
    text: str
    direction: str
    arrow: str


class AssetRowRead(BaseModel):
    id: str
    name: str
    symbol: str
    rank: int
    price_text: str
    change: ChangeRead
    image: str
    icon: dict
    selected: bool = False


class AssetCardRead(BaseModel):
    id: str
    name: str
    symbol: str
    icon: dict
    price_text: str
    change: ChangeRead
    period_label: str
    market_cap_text: str
    market_cap_rank: Optional[int] = None
    volume_text: str
    volume_share_text: str
    currency: str


class ChartPointRead(BaseModel):
    timestamp: int
    label: str
    price: float
    price_text: str


class ChartRead(BaseModel):
    asset_id: str
    timeframe: str
    trend: str
    pending: bool
    synthetic: bool
    points: list[ChartPointRead]


class DashboardRead(BaseModel):
    is_loading: bool
    last_error: Optional[str] = None
    last_updated_at: Optional[str] = None
    selected_asset_id: str
    selected_timeframe: str
    timeframes: list[str]
    watchlist_ids: list[str]
    selector_options: list[dict[str, str]]
    card: AssetCardRead
    assets: list[AssetRowRead]
    watchlist: list[AssetRowRead]
    chart: ChartRead
    title: str


class RefreshStatusRead(BaseModel):
    is_loading: bool
    asset_count: int
    last_error: Optional[str] = None
    last_updated_at: Optional[str] = None
    refresh_count: int


class WatchlistRead(BaseModel):
    watchlist_ids: list[str]
    rows: list[AssetRowRead]
    title: str
