import asyncio

import pytest

from conftest import FIXED_NOW, make_quote
from cryptotracker.errors import NotFoundError, ValidationError
from cryptotracker.providers.base import HistoryPoint
from cryptotracker.providers.catalog import DEFAULT_ASSET
from cryptotracker.services.history import DAY_MS, HOUR_MS, SAMPLING, HistorySynthesizer, synthesize
from cryptotracker.services.selection import Timeframe

ANCHOR_MS = int(FIXED_NOW.replace(second=0).timestamp() * 1000)


def _spacings(series):
    stamps = [p.timestamp for p in series.points]
    return {b - a for a, b in zip(stamps, stamps[1:])}


@pytest.mark.asyncio
async def test_thirty_day_series_has_31_daily_points(fake_provider, fixed_clock):
    synth = HistorySynthesizer(fake_provider, clock=fixed_clock)

    series = await synth.get_history("bitcoin", "30d")

    assert len(series.points) == 31
    assert _spacings(series) == {DAY_MS}
    assert series.points[-1].timestamp == ANCHOR_MS


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "timeframe,points,spacing",
    [("24h", 25, HOUR_MS), ("7d", 8, DAY_MS), ("30d", 31, DAY_MS), ("1y", 13, 30 * DAY_MS)],
)
async def test_sampling_policy_per_timeframe(fake_provider, fixed_clock, timeframe, points, spacing):
    synth = HistorySynthesizer(fake_provider, clock=fixed_clock)
    series = await synth.get_history("bitcoin", timeframe)

    assert len(series.points) == points
    assert _spacings(series) == {spacing}


@pytest.mark.asyncio
async def test_fallback_series_is_anchored_and_flagged(fake_provider, fixed_clock):
    anchor = make_quote("ethereum", 2, price=3245.67, change=-1.23)
    fake_provider.history_results["ethereum"] = NotFoundError("unknown")
    synth = HistorySynthesizer(fake_provider, anchor_lookup=lambda asset_id: anchor, clock=fixed_clock)

    series = await synth.get_history("ethereum", Timeframe.D7)

    assert series.synthetic is True
    assert series.points[-1].price == 3245.67
    bound = min(0.05, 1.23 / 1000 + 0.002)
    for k, point in enumerate(series.points[:-1]):
        trend = 1 - (1 - k / 7) * -0.0123
        assert abs(point.price / 3245.67 - trend) <= bound + 1e-9
    assert all(p.price >= 0 for p in series.points)


@pytest.mark.asyncio
async def test_fallback_without_anchor_uses_default_record(fake_provider, fixed_clock):
    synth = HistorySynthesizer(fake_provider, clock=fixed_clock)
    series = await synth.get_history("somecoin", "24h")
    assert series.points[-1].price == DEFAULT_ASSET.current_price


def test_synthesized_shape_is_deterministic():
    first = synthesize(DEFAULT_ASSET, Timeframe.D30, ANCHOR_MS)
    second = synthesize(DEFAULT_ASSET, Timeframe.D30, ANCHOR_MS)
    assert first == second


@pytest.mark.asyncio
async def test_live_history_is_resampled_onto_grid(fake_provider, fixed_clock):
    # Daily observations at midnight covering the last 40 days.
    midnight = ANCHOR_MS - ANCHOR_MS % DAY_MS
    observations = [HistoryPoint(timestamp=midnight - i * DAY_MS, price=float(100 + i)) for i in range(40)]
    fake_provider.history_results["bitcoin"] = sorted(observations, key=lambda p: p.timestamp)
    synth = HistorySynthesizer(fake_provider, clock=fixed_clock)

    series = await synth.get_history("bitcoin", "30d")

    assert series.synthetic is False
    assert fake_provider.history_calls == [("bitcoin", SAMPLING[Timeframe.D30].lookback_days, "daily")]
    assert len(series.points) == 31
    assert _spacings(series) == {DAY_MS}
    # Anchor takes the newest observation; the rest take the last one at or before each grid time.
    assert series.points[-1].price == 100.0
    assert series.points[0].price == 130.0


@pytest.mark.asyncio
async def test_live_history_for_24h_requests_hourly_data(fake_provider, fixed_clock):
    fake_provider.history_results["bitcoin"] = [HistoryPoint(timestamp=ANCHOR_MS, price=5.0)]
    synth = HistorySynthesizer(fake_provider, clock=fixed_clock)

    series = await synth.get_history("bitcoin", "24h")

    assert fake_provider.history_calls == [("bitcoin", 1, "hourly")]
    assert {p.price for p in series.points} == {5.0}


@pytest.mark.asyncio
async def test_empty_upstream_history_falls_back(fake_provider, fixed_clock):
    fake_provider.history_results["bitcoin"] = []
    synth = HistorySynthesizer(fake_provider, clock=fixed_clock)
    series = await synth.get_history("bitcoin", "7d")
    assert series.synthetic is True
    assert len(series.points) == 8


@pytest.mark.asyncio
@pytest.mark.parametrize("release_order", [("bitcoin", "ethereum"), ("ethereum", "bitcoin")])
async def test_superseded_request_is_discarded(fake_provider, fixed_clock, release_order):
    for asset_id in ("bitcoin", "ethereum"):
        fake_provider.history_gates[asset_id] = asyncio.Event()
        fake_provider.history_results[asset_id] = [HistoryPoint(timestamp=ANCHOR_MS, price=1.0)]
    synth = HistorySynthesizer(fake_provider, clock=fixed_clock)

    older = asyncio.create_task(synth.get_history("bitcoin", "24h"))
    await asyncio.sleep(0)
    newer = asyncio.create_task(synth.get_history("ethereum", "7d"))
    await asyncio.sleep(0)
    assert synth.displayed is None

    for asset_id in release_order:
        fake_provider.history_gates[asset_id].set()
        await asyncio.sleep(0)
    await asyncio.gather(older, newer)

    assert synth.requested == ("ethereum", Timeframe.D7)
    assert synth.current.asset_id == "ethereum"
    assert synth.current.timeframe is Timeframe.D7
    assert synth.displayed is synth.current


@pytest.mark.asyncio
async def test_displayed_is_none_while_new_pair_loads(fake_provider, fixed_clock):
    synth = HistorySynthesizer(fake_provider, clock=fixed_clock)
    await synth.get_history("bitcoin", "24h")
    assert synth.displayed is not None

    fake_provider.history_gates["bitcoin"] = asyncio.Event()
    pending = asyncio.create_task(synth.get_history("bitcoin", "30d"))
    await asyncio.sleep(0)
    assert synth.displayed is None

    fake_provider.history_gates["bitcoin"].set()
    await pending
    assert synth.displayed.timeframe is Timeframe.D30


@pytest.mark.asyncio
async def test_invalid_inputs_are_rejected_before_fetching(fake_provider, fixed_clock):
    synth = HistorySynthesizer(fake_provider, clock=fixed_clock)
    with pytest.raises(ValidationError):
        await synth.get_history("", "24h")
    with pytest.raises(ValidationError):
        await synth.get_history("bitcoin", "2w")
    assert fake_provider.history_calls == []
