from enum import Enum
from typing import Iterable, Optional, Sequence, Union

from cryptotracker.errors import ValidationError
from cryptotracker.providers.base import AssetQuote
from cryptotracker.providers.catalog import DEFAULT_ASSET, DEFAULT_SELECTOR_OPTIONS


class Timeframe(str, Enum):
    H24 = "24h"
    D7 = "7d"
    D30 = "30d"
    Y1 = "1y"

    @classmethod
    def parse(cls, value: Union["Timeframe", str]) -> "Timeframe":
        if isinstance(value, Timeframe):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            allowed = ", ".join(tf.value for tf in cls)
            raise ValidationError(f"unknown timeframe {value!r}, expected one of {allowed}") from exc


def find_quote(snapshot: Sequence[AssetQuote], asset_id: str) -> Optional[AssetQuote]:
    return next((quote for quote in snapshot if quote.id == asset_id), None)


class SelectionState:
    """The user's selected asset, timeframe and watchlist.

    Writes are never checked against the current snapshot; reads fall back to
    the built-in default record instead.
    """

    def __init__(
        self,
        selected_asset_id: str = DEFAULT_ASSET.id,
        selected_timeframe: Union[Timeframe, str] = Timeframe.H24,
        watchlist_ids: Iterable[str] = (),
    ) -> None:
        self.selected_asset_id = selected_asset_id or DEFAULT_ASSET.id
        self.selected_timeframe = Timeframe.parse(selected_timeframe)
        self._watchlist: list[str] = []
        for asset_id in watchlist_ids:
            self.add_to_watchlist(asset_id)

    @property
    def watchlist_ids(self) -> tuple[str, ...]:
        return tuple(self._watchlist)

    def select_asset(self, asset_id: str) -> None:
        if not asset_id:
            raise ValidationError("asset id is required")
        self.selected_asset_id = asset_id

    def select_timeframe(self, timeframe: Union[Timeframe, str]) -> None:
        self.selected_timeframe = Timeframe.parse(timeframe)

    def add_to_watchlist(self, asset_id: str) -> bool:
        if not asset_id:
            raise ValidationError("asset id is required")
        if asset_id in self._watchlist:
            return False
        self._watchlist.append(asset_id)
        return True

    def remove_from_watchlist(self, asset_id: str) -> bool:
        if asset_id not in self._watchlist:
            return False
        self._watchlist.remove(asset_id)
        return True

    def resolve_effective(self, snapshot: Sequence[AssetQuote]) -> AssetQuote:
        return find_quote(snapshot, self.selected_asset_id) or DEFAULT_ASSET

    def watchlist(self, snapshot: Sequence[AssetQuote]) -> list[AssetQuote]:
        by_id = {quote.id: quote for quote in snapshot}
        return [by_id[asset_id] for asset_id in self._watchlist if asset_id in by_id]

    @staticmethod
    def selector_options(snapshot: Sequence[AssetQuote], size: int = 5) -> list[dict[str, str]]:
        if not snapshot:
            return [dict(option) for option in DEFAULT_SELECTOR_OPTIONS[:size]]
        return [{"id": q.id, "name": q.name, "symbol": q.symbol} for q in snapshot[:size]]
