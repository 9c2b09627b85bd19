import argparse
import asyncio
import logging

from cryptotracker.config import settings
from cryptotracker.services.history import HistorySynthesizer
from cryptotracker.services.presentation import chart_view, format_change, format_currency
from cryptotracker.services.provider_factory import build_provider
from cryptotracker.services.refresh import RefreshScheduler
from cryptotracker.services.selection import SelectionState, Timeframe, find_quote


async def _refresh_once() -> int:
    provider = build_provider()
    refresher = RefreshScheduler(provider, limit=settings.listings_limit, convert=settings.convert_currency)
    state = await refresher.refresh_now()
    if state.last_error:
        print(f"Refresh failed: {state.last_error}")
        return 1
    for quote in state.last_snapshot:
        change = format_change(quote.price_change_percentage_24h)
        print(f"#{quote.rank:<3} {quote.symbol:<6} {format_currency(quote.current_price):>16} {change.arrow} {change.text}")
    return 0


async def _history(asset_id: str, timeframe: str) -> int:
    provider = build_provider()
    refresher = RefreshScheduler(provider, limit=settings.listings_limit, convert=settings.convert_currency)
    state = await refresher.refresh_now()
    snapshot = state.last_snapshot
    synthesizer = HistorySynthesizer(
        provider, convert=settings.convert_currency, anchor_lookup=lambda asset: find_quote(snapshot, asset)
    )
    series = await synthesizer.get_history(asset_id, timeframe)
    selection = SelectionState(asset_id, timeframe)
    chart = chart_view(series, selection.resolve_effective(snapshot), selection.selected_timeframe)
    if chart.synthetic:
        print("(synthesized: upstream history unavailable)")
    for point in chart.points:
        print(f"{point.label:>8} {point.price_text}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="CryptoTracker jobs")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("refresh-once", help="Fetch listings once and print them")
    history = sub.add_parser("history", help="Print the chart series for one asset")
    history.add_argument("asset_id")
    history.add_argument("timeframe", nargs="?", default=Timeframe.H24.value, choices=[tf.value for tf in Timeframe])
    serve = sub.add_parser("serve", help="Run the dashboard API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level)
    if args.command == "refresh-once":
        raise SystemExit(asyncio.run(_refresh_once()))
    if args.command == "history":
        raise SystemExit(asyncio.run(_history(args.asset_id, args.timeframe)))
    if args.command == "serve":
        import uvicorn

        uvicorn.run("cryptotracker.main:app", host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
