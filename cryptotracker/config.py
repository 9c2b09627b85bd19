from pydantic import BaseModel
import os

DEFAULT_WATCHLIST = "bitcoin,ethereum,solana,binancecoin,cardano,polkadot,dogecoin,avalanche,chainlink"


class Settings(BaseModel):
    app_name: str = "CryptoTracker"
    provider_name: str = os.getenv("PROVIDER_NAME", "coinmarketcap")
    market_api_url: str = os.getenv("COINMARKETCAP_API_URL", "")
    market_api_key: str = os.getenv("COINMARKETCAP_API_KEY", "")
    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "20"))
    refresh_interval_seconds: int = int(os.getenv("REFRESH_INTERVAL_SECONDS", "60"))
    listings_limit: int = int(os.getenv("LISTINGS_LIMIT", "10"))
    convert_currency: str = os.getenv("CONVERT_CURRENCY", "USD")
    default_asset_id: str = os.getenv("DEFAULT_ASSET_ID", "bitcoin")
    watchlist: list[str] = [item.strip() for item in os.getenv("WATCHLIST", DEFAULT_WATCHLIST).split(",") if item.strip()]
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
