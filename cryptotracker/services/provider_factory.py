import logging

from cryptotracker.config import settings
from cryptotracker.providers.base import MarketDataProvider
from cryptotracker.providers.coinmarketcap_provider import CoinMarketCapProvider
from cryptotracker.providers.mock_provider import MockMarketDataProvider

logger = logging.getLogger(__name__)


def build_provider() -> MarketDataProvider:
    if settings.provider_name == "coinmarketcap":
        return CoinMarketCapProvider()
    if settings.provider_name == "mock":
        return MockMarketDataProvider()
    logger.warning("unknown PROVIDER_NAME %r, using mock provider", settings.provider_name)
    return MockMarketDataProvider()
