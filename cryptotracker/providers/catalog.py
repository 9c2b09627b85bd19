from cryptotracker.providers.base import PLACEHOLDER_IMAGE, AssetIcon, AssetQuote, KnownAsset, UnknownAsset

KNOWN_ASSET_ICONS: dict[str, KnownAsset] = {
    "bitcoin": KnownAsset(variant="bitcoin", color="#F7931A"),
    "ethereum": KnownAsset(variant="gem", color="#627EEA"),
    "binancecoin": KnownAsset(variant="coins", color="#F3BA2F"),
    "solana": KnownAsset(variant="gem", color="#14F195"),
    "cardano": KnownAsset(variant="gem", color="#0033AD"),
    "ripple": KnownAsset(variant="gem", color="#23292F"),
    "polkadot": KnownAsset(variant="gem", color="#E6007A"),
    "dogecoin": KnownAsset(variant="gem", color="#C3A634"),
    "avalanche": KnownAsset(variant="gem", color="#E84142"),
    "chainlink": KnownAsset(variant="gem", color="#2A5ADA"),
}


def resolve_icon(asset_id: str, symbol: str) -> AssetIcon:
    known = KNOWN_ASSET_ICONS.get(asset_id)
    if known is not None:
        return known
    return UnknownAsset(symbol_text=(symbol or "?")[:3].upper())


# Shown whenever the selected asset is missing from the latest snapshot.
DEFAULT_ASSET = AssetQuote(
    id="bitcoin",
    name="Bitcoin",
    symbol="BTC",
    current_price=60123.45,
    price_change_percentage_24h=2.34,
    market_cap=1167387834231,
    total_volume=28736495823,
    rank=1,
    image=PLACEHOLDER_IMAGE,
    icon=KNOWN_ASSET_ICONS["bitcoin"],
)

# Selector entries offered before the first snapshot arrives.
DEFAULT_SELECTOR_OPTIONS: list[dict[str, str]] = [
    {"id": "bitcoin", "name": "Bitcoin", "symbol": "BTC"},
    {"id": "ethereum", "name": "Ethereum", "symbol": "ETH"},
    {"id": "binancecoin", "name": "BNB", "symbol": "BNB"},
    {"id": "solana", "name": "Solana", "symbol": "SOL"},
    {"id": "cardano", "name": "Cardano", "symbol": "ADA"},
]

# Offline market used by the mock provider, CoinMarketCap numeric ids included.
OFFLINE_MARKET: list[dict] = [
    {"cmc_id": 1, "slug": "bitcoin", "name": "Bitcoin", "symbol": "BTC", "price": 60123.45,
     "market_cap": 1167387834231, "volume_24h": 28736495823, "percent_change_24h": 2.34},
    {"cmc_id": 1027, "slug": "ethereum", "name": "Ethereum", "symbol": "ETH", "price": 3245.67,
     "market_cap": 389765432198, "volume_24h": 15678943210, "percent_change_24h": -1.23},
    {"cmc_id": 1839, "slug": "binancecoin", "name": "Binance Coin", "symbol": "BNB", "price": 567.89,
     "market_cap": 87654321098, "volume_24h": 2345678901, "percent_change_24h": 0.45},
    {"cmc_id": 5426, "slug": "solana", "name": "Solana", "symbol": "SOL", "price": 123.45,
     "market_cap": 54321098765, "volume_24h": 3456789012, "percent_change_24h": 5.67},
    {"cmc_id": 2010, "slug": "cardano", "name": "Cardano", "symbol": "ADA", "price": 0.56,
     "market_cap": 19876543210, "volume_24h": 987654321, "percent_change_24h": -2.34},
    {"cmc_id": 52, "slug": "ripple", "name": "XRP", "symbol": "XRP", "price": 0.78,
     "market_cap": 18765432109, "volume_24h": 876543210, "percent_change_24h": 1.23},
    {"cmc_id": 6636, "slug": "polkadot", "name": "Polkadot", "symbol": "DOT", "price": 7.89,
     "market_cap": 9876543210, "volume_24h": 765432109, "percent_change_24h": -0.98},
    {"cmc_id": 74, "slug": "dogecoin", "name": "Dogecoin", "symbol": "DOGE", "price": 0.12,
     "market_cap": 8765432109, "volume_24h": 654321098, "percent_change_24h": 3.45},
    {"cmc_id": 5805, "slug": "avalanche", "name": "Avalanche", "symbol": "AVAX", "price": 34.56,
     "market_cap": 7654321098, "volume_24h": 543210987, "percent_change_24h": -1.23},
    {"cmc_id": 1975, "slug": "chainlink", "name": "Chainlink", "symbol": "LINK", "price": 18.90,
     "market_cap": 6543210987, "volume_24h": 432109876, "percent_change_24h": 2.34},
]
