import logging
from typing import Any, Optional

import httpx

from cryptotracker.config import settings
from cryptotracker.errors import ConfigError, NotFoundError, UpstreamError
from cryptotracker.providers.base import MarketDataProvider, check_currency

logger = logging.getLogger(__name__)


class CoinMarketCapProvider(MarketDataProvider):
    name = "coinmarketcap"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (settings.market_api_url if base_url is None else base_url).rstrip("/")
        self.api_key = settings.market_api_key if api_key is None else api_key
        self.timeout = settings.http_timeout_seconds if timeout is None else timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        # Checked per call: missing credentials surface at first use, not at startup.
        if not self.base_url:
            raise ConfigError("COINMARKETCAP_API_URL is required when PROVIDER_NAME=coinmarketcap")
        if not self.api_key:
            raise ConfigError("COINMARKETCAP_API_KEY is required when PROVIDER_NAME=coinmarketcap")
        headers = {"X-CMC_PRO_API_KEY": self.api_key, "Accept": "application/json"}
        return httpx.AsyncClient(
            base_url=self.base_url, headers=headers, timeout=self.timeout, transport=self._transport
        )

    @staticmethod
    def _decode(resp: httpx.Response, what: str) -> Any:
        if not resp.is_success:
            raise UpstreamError(f"Failed to fetch {what} from CoinMarketCap (HTTP {resp.status_code})")
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(f"CoinMarketCap returned malformed JSON for {what}") from exc

    async def _get(self, client: httpx.AsyncClient, path: str, params: dict) -> httpx.Response:
        try:
            return await client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"request to {path} failed: {exc}") from exc

    async def fetch_listings_payload(self, limit: int = 10, start: int = 1, convert: str = "USD") -> dict:
        params = {"start": start, "limit": limit, "convert": check_currency(convert)}
        async with self._client() as client:
            resp = await self._get(client, "/v1/cryptocurrency/listings/latest", params)
        return self._decode(resp, "listings")

    async def _resolve_id(self, client: httpx.AsyncClient, asset_id: str) -> str:
        if asset_id.isdigit():
            return asset_id
        resp = await self._get(client, "/v1/cryptocurrency/map", {"slug": asset_id})
        if resp.status_code == 400:
            raise NotFoundError(f"unknown cryptocurrency {asset_id!r}")
        payload = self._decode(resp, "id map")
        entries = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            raise UpstreamError("id map payload has no 'data' list")
        if not entries:
            raise NotFoundError(f"unknown cryptocurrency {asset_id!r}")
        first = entries[0]
        if not isinstance(first, dict) or first.get("id") is None:
            raise UpstreamError("id map entry has no 'id'")
        return str(first["id"])

    async def fetch_history_payload(
        self, asset_id: str, lookback_days: int, convert: str = "USD", interval: str = "daily"
    ) -> dict:
        count = lookback_days * 24 if interval == "hourly" else lookback_days
        async with self._client() as client:
            cmc_id = await self._resolve_id(client, asset_id)
            params = {"id": cmc_id, "count": count, "interval": interval, "convert": check_currency(convert)}
            resp = await self._get(client, "/v2/cryptocurrency/quotes/historical", params)
        if resp.status_code == 400:
            raise NotFoundError(f"no history for cryptocurrency {asset_id!r}")
        logger.debug("history for %s (%s, %s x %s) fetched", asset_id, cmc_id, count, interval)
        return self._decode(resp, "historical quotes")
