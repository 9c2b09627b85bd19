from dataclasses import dataclass, replace
from datetime import datetime, timezone
import asyncio
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from cryptotracker.errors import UpstreamError
from cryptotracker.providers.base import AssetQuote, MarketDataProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshState:
    is_loading: bool = False
    last_snapshot: tuple[AssetQuote, ...] = ()
    last_error: Optional[str] = None
    last_updated_at: Optional[datetime] = None
    refresh_count: int = 0


class RefreshScheduler:
    """Polls listings on a fixed interval and on demand.

    At most one listings fetch is in flight at any time: timer ticks that land
    while a fetch is running are skipped, and ``refresh_now`` callers join the
    running fetch instead of issuing another one. The state is a frozen record
    replaced wholesale after each cycle, so readers never see a mix of two
    snapshots.
    """

    job_id = "listings-refresh"

    def __init__(
        self,
        provider: MarketDataProvider,
        interval_seconds: int = 60,
        limit: int = 10,
        start: int = 1,
        convert: str = "USD",
    ) -> None:
        self.provider = provider
        self.interval_seconds = interval_seconds
        self.limit = limit
        self.start_rank = start
        self.convert = convert
        self.fetch_count = 0
        self._state = RefreshState()
        self._inflight: Optional[asyncio.Task] = None
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        """Fetch immediately, then every ``interval_seconds`` until ``stop``.

        Must be called from inside the running event loop.
        """
        if self._scheduler is not None:
            raise RuntimeError("refresh scheduler already started")

        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            self._tick,
            "interval",
            seconds=self.interval_seconds,
            id=self.job_id,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        self._ensure_cycle()
        logger.info("listings refresh started, every %ss", self.interval_seconds)

    def stop(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("listings refresh stopped")

    def next_run_time(self) -> Optional[datetime]:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(self.job_id)
        return job.next_run_time if job else None

    async def refresh_now(self) -> RefreshState:
        await asyncio.shield(self._ensure_cycle())
        return self._state

    async def _tick(self) -> None:
        if self._inflight is not None and not self._inflight.done():
            logger.debug("listings fetch still in flight, skipping tick")
            return
        await self._ensure_cycle()

    def _ensure_cycle(self) -> asyncio.Task:
        if self._inflight is None or self._inflight.done():
            self._state = replace(self._state, is_loading=True)
            self._inflight = asyncio.get_running_loop().create_task(self._run_cycle())
        return self._inflight

    async def _run_cycle(self) -> None:
        self.fetch_count += 1
        try:
            quotes = await self.provider.fetch_listings(limit=self.limit, start=self.start_rank, convert=self.convert)
            if not quotes:
                raise UpstreamError("provider returned no listings")
        except Exception as exc:
            logger.warning("listings refresh failed, keeping %s cached assets: %s", len(self._state.last_snapshot), exc)
            self._state = replace(self._state, is_loading=False, last_error=str(exc) or type(exc).__name__)
            return

        self._state = RefreshState(
            is_loading=False,
            last_snapshot=tuple(quotes),
            last_error=None,
            last_updated_at=datetime.now(timezone.utc),
            refresh_count=self._state.refresh_count + 1,
        )
        logger.info("listings refreshed: %s assets", len(quotes))
