from dataclasses import dataclass
import logging
from typing import Optional, Union

from cryptotracker.providers.base import AssetQuote
from cryptotracker.services.history import HistorySeries, HistorySynthesizer
from cryptotracker.services.presentation import (
    AssetCard,
    AssetRow,
    ChartView,
    asset_card,
    chart_view,
    ranked_rows,
    view_metadata,
    watchlist_rows,
)
from cryptotracker.services.refresh import RefreshScheduler, RefreshState
from cryptotracker.services.selection import SelectionState, Timeframe, find_quote

logger = logging.getLogger(__name__)


@dataclass
class DashboardView:
    is_loading: bool
    last_error: Optional[str]
    last_updated_at: Optional[str]
    selected_asset_id: str
    selected_timeframe: str
    timeframes: list[str]
    watchlist_ids: list[str]
    selector_options: list[dict[str, str]]
    card: AssetCard
    assets: list[AssetRow]
    watchlist: list[AssetRow]
    chart: ChartView
    title: str


class Dashboard:
    """One dashboard view: selection and chart state over a shared refresher.

    The refresher is handed in by whoever hosts the view; ``mount`` starts its
    timer and ``teardown`` stops it.
    """

    def __init__(
        self,
        refresher: RefreshScheduler,
        selection: Optional[SelectionState] = None,
        history: Optional[HistorySynthesizer] = None,
        ranked_limit: int = 5,
    ) -> None:
        self.refresher = refresher
        self.selection = selection or SelectionState()
        self.history = history or HistorySynthesizer(
            refresher.provider, convert=refresher.convert, anchor_lookup=self._lookup
        )
        self.ranked_limit = ranked_limit

    @property
    def snapshot(self) -> tuple[AssetQuote, ...]:
        return self.refresher.state.last_snapshot

    def _lookup(self, asset_id: str) -> Optional[AssetQuote]:
        return find_quote(self.snapshot, asset_id)

    async def mount(self) -> None:
        self.refresher.start()
        state = await self.refresher.refresh_now()
        if state.last_error:
            logger.warning("initial listings load failed: %s", state.last_error)
        await self.reload_history()

    def teardown(self) -> None:
        self.refresher.stop()

    async def refresh(self) -> RefreshState:
        return await self.refresher.refresh_now()

    async def reload_history(self) -> HistorySeries:
        return await self.history.get_history(self.selection.selected_asset_id, self.selection.selected_timeframe)

    async def select_asset(self, asset_id: str) -> HistorySeries:
        self.selection.select_asset(asset_id)
        return await self.reload_history()

    async def select_timeframe(self, timeframe: Union[Timeframe, str]) -> HistorySeries:
        self.selection.select_timeframe(timeframe)
        return await self.reload_history()

    def add_to_watchlist(self, asset_id: str) -> bool:
        return self.selection.add_to_watchlist(asset_id)

    def remove_from_watchlist(self, asset_id: str) -> bool:
        return self.selection.remove_from_watchlist(asset_id)

    def effective_asset(self) -> AssetQuote:
        return self.selection.resolve_effective(self.snapshot)

    def chart(self) -> ChartView:
        series = self.history.displayed
        wanted = (self.selection.selected_asset_id, self.selection.selected_timeframe)
        if series is not None and (series.asset_id, series.timeframe) != wanted:
            series = None
        return chart_view(series, self.effective_asset(), self.selection.selected_timeframe)

    def view(self) -> DashboardView:
        # Read the refresher state once so every projection sees the same snapshot.
        state = self.refresher.state
        snapshot = state.last_snapshot
        selection = self.selection
        selected = selection.resolve_effective(snapshot)
        watchlist = selection.watchlist(snapshot)

        return DashboardView(
            is_loading=state.is_loading,
            last_error=state.last_error,
            last_updated_at=state.last_updated_at.isoformat() if state.last_updated_at else None,
            selected_asset_id=selection.selected_asset_id,
            selected_timeframe=selection.selected_timeframe.value,
            timeframes=[tf.value for tf in Timeframe],
            watchlist_ids=list(selection.watchlist_ids),
            selector_options=selection.selector_options(snapshot),
            card=asset_card(selected, snapshot, selection.selected_timeframe, currency=self.refresher.convert),
            assets=ranked_rows(snapshot, selection.selected_asset_id, limit=self.ranked_limit),
            watchlist=watchlist_rows(watchlist, selection.selected_asset_id),
            chart=self.chart(),
            title=view_metadata(watchlist).title,
        )
