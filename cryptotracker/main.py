from dataclasses import asdict
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from cryptotracker.config import settings
from cryptotracker.errors import MarketDataError, NotFoundError, UpstreamError, ValidationError
from cryptotracker.providers.base import MarketDataProvider, check_history_params, check_listing_params
from cryptotracker.schemas import AssetRowRead, ChartRead, DashboardRead, RefreshStatusRead, WatchlistRead
from cryptotracker.services.dashboard import Dashboard
from cryptotracker.services.history import SAMPLING
from cryptotracker.services.presentation import ranked_rows, view_metadata, watchlist_rows
from cryptotracker.services.provider_factory import build_provider
from cryptotracker.services.refresh import RefreshScheduler, RefreshState
from cryptotracker.services.selection import SelectionState, Timeframe

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
Instrumentator().instrument(app).expose(app)


@app.on_event("startup")
async def startup() -> None:
    logging.basicConfig(level=settings.log_level)
    provider = build_provider()
    refresher = RefreshScheduler(
        provider,
        interval_seconds=settings.refresh_interval_seconds,
        limit=settings.listings_limit,
        convert=settings.convert_currency,
    )
    selection = SelectionState(settings.default_asset_id, watchlist_ids=settings.watchlist)
    app.state.provider = provider
    app.state.dashboard = Dashboard(refresher, selection)
    await app.state.dashboard.mount()


@app.on_event("shutdown")
async def shutdown() -> None:
    app.state.dashboard.teardown()
    await app.state.provider.aclose()


def get_provider(request: Request) -> MarketDataProvider:
    return request.app.state.provider


def get_dashboard(request: Request) -> Dashboard:
    return request.app.state.dashboard


@app.exception_handler(MarketDataError)
async def market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": "Failed to fetch cryptocurrency data"})
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
    return JSONResponse(status_code=400, content={"error": problems})


def _refresh_status(state: RefreshState) -> RefreshStatusRead:
    return RefreshStatusRead(
        is_loading=state.is_loading,
        asset_count=len(state.last_snapshot),
        last_error=state.last_error,
        last_updated_at=state.last_updated_at.isoformat() if state.last_updated_at else None,
        refresh_count=state.refresh_count,
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# ── Upstream proxies ─────────────────────────────────────────


@app.get("/listings")
async def proxy_listings(
    limit: int = 10,
    start: int = 1,
    convert_currency: str = Query("USD", alias="convertCurrency"),
    provider: MarketDataProvider = Depends(get_provider),
) -> dict:
    convert = check_listing_params(limit, start, convert_currency)
    return await provider.fetch_listings_payload(limit=limit, start=start, convert=convert)


@app.get("/history")
async def proxy_history(
    id: Optional[str] = None,
    timeframe: Optional[str] = None,
    days: Optional[int] = None,
    convert_currency: str = Query("USD", alias="convertCurrency"),
    provider: MarketDataProvider = Depends(get_provider),
) -> dict:
    if not id:
        raise ValidationError("Cryptocurrency ID is required")
    tf = Timeframe.parse(timeframe) if timeframe else None
    if days is None:
        days = SAMPLING[tf].lookback_days if tf else 30
    interval = SAMPLING[tf].interval if tf else "daily"
    convert = check_history_params(id, days, convert_currency, interval)
    try:
        return await provider.fetch_history_payload(id, days, convert=convert, interval=interval)
    except NotFoundError as exc:
        # the proxy reports every upstream failure as a generic 500
        raise UpstreamError(str(exc)) from exc


# ── Dashboard ────────────────────────────────────────────────


@app.get("/api/dashboard", response_model=DashboardRead)
async def dashboard_view(dashboard: Dashboard = Depends(get_dashboard)) -> DashboardRead:
    return DashboardRead(**asdict(dashboard.view()))


@app.get("/api/assets", response_model=list[AssetRowRead])
async def list_assets(limit: int = 10, dashboard: Dashboard = Depends(get_dashboard)) -> list[AssetRowRead]:
    rows = ranked_rows(dashboard.snapshot, dashboard.selection.selected_asset_id, limit=max(1, min(100, limit)))
    return [AssetRowRead(**asdict(row)) for row in rows]


def _watchlist_read(dashboard: Dashboard) -> WatchlistRead:
    quotes = dashboard.selection.watchlist(dashboard.snapshot)
    rows = watchlist_rows(quotes, dashboard.selection.selected_asset_id)
    return WatchlistRead(
        watchlist_ids=list(dashboard.selection.watchlist_ids),
        rows=[AssetRowRead(**asdict(row)) for row in rows],
        title=view_metadata(quotes).title,
    )


@app.get("/api/watchlist", response_model=WatchlistRead)
async def get_watchlist(dashboard: Dashboard = Depends(get_dashboard)) -> WatchlistRead:
    return _watchlist_read(dashboard)


@app.post("/api/watchlist/{asset_id}", response_model=WatchlistRead)
async def add_to_watchlist(asset_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> WatchlistRead:
    dashboard.add_to_watchlist(asset_id)
    return _watchlist_read(dashboard)


@app.delete("/api/watchlist/{asset_id}", response_model=WatchlistRead)
async def remove_from_watchlist(asset_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> WatchlistRead:
    dashboard.remove_from_watchlist(asset_id)
    return _watchlist_read(dashboard)


@app.get("/api/chart", response_model=ChartRead)
async def get_chart(dashboard: Dashboard = Depends(get_dashboard)) -> ChartRead:
    return ChartRead(**asdict(dashboard.chart()))


@app.post("/api/select/{asset_id}", response_model=DashboardRead)
async def select_asset(asset_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> DashboardRead:
    await dashboard.select_asset(asset_id)
    return DashboardRead(**asdict(dashboard.view()))


@app.post("/api/timeframe/{timeframe}", response_model=DashboardRead)
async def select_timeframe(timeframe: str, dashboard: Dashboard = Depends(get_dashboard)) -> DashboardRead:
    await dashboard.select_timeframe(timeframe)
    return DashboardRead(**asdict(dashboard.view()))


@app.post("/refresh", response_model=RefreshStatusRead)
async def manual_refresh(dashboard: Dashboard = Depends(get_dashboard)) -> RefreshStatusRead:
    return _refresh_status(await dashboard.refresh())


@app.get("/refresh", response_model=RefreshStatusRead)
async def refresh_status(dashboard: Dashboard = Depends(get_dashboard)) -> RefreshStatusRead:
    return _refresh_status(dashboard.refresher.state)
