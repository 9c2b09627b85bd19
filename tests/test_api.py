import pytest
from fastapi.testclient import TestClient

from cryptotracker.main import app


@pytest.fixture()
def client():
    with TestClient(app) as c:
        yield c


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_dashboard_is_loaded_on_startup(client):
    r = client.get("/api/dashboard")
    assert r.status_code == 200
    data = r.json()
    assert data["is_loading"] is False
    assert data["last_error"] is None
    assert data["last_updated_at"] is not None
    assert data["selected_asset_id"] == "bitcoin"
    assert data["selected_timeframe"] == "24h"
    assert data["timeframes"] == ["24h", "7d", "30d", "1y"]
    assert [row["id"] for row in data["assets"]] == ["bitcoin", "ethereum", "binancecoin", "solana", "cardano"]
    assert [row["id"] for row in data["watchlist"]] == ["bitcoin", "ethereum", "solana"]
    assert data["title"] == "CryptoTracker - Bitcoin, Ethereum, Solana"
    assert data["card"]["name"] == "Bitcoin"
    assert data["card"]["market_cap_rank"] == 1
    assert data["chart"]["pending"] is False
    assert data["chart"]["synthetic"] is False
    assert len(data["chart"]["points"]) == 25


def test_select_asset_and_timeframe(client):
    r = client.post("/api/select/ethereum")
    assert r.status_code == 200
    data = r.json()
    assert data["card"]["id"] == "ethereum"
    assert data["card"]["change"]["direction"] == "down"
    assert data["chart"]["asset_id"] == "ethereum"

    r = client.post("/api/timeframe/30d")
    assert r.status_code == 200
    chart = r.json()["chart"]
    assert chart["timeframe"] == "30d"
    assert len(chart["points"]) == 31

    assert client.get("/api/chart").json()["timeframe"] == "30d"


def test_unknown_timeframe_is_rejected(client):
    r = client.post("/api/timeframe/5m")
    assert r.status_code == 400
    assert "timeframe" in r.json()["error"]
    assert client.get("/api/dashboard").json()["selected_timeframe"] == "24h"


def test_unlisted_selection_falls_back_to_default_record(client):
    r = client.post("/api/select/doesnotexist")
    assert r.status_code == 200
    data = r.json()
    assert data["selected_asset_id"] == "doesnotexist"
    assert data["card"]["id"] == "bitcoin"
    assert data["card"]["price_text"] == "$60,123.45"
    assert data["chart"]["synthetic"] is True


def test_watchlist_edits(client):
    r = client.post("/api/watchlist/cardano")
    assert r.json()["watchlist_ids"] == ["bitcoin", "ethereum", "solana", "cardano"]

    r = client.post("/api/watchlist/bitcoin")
    assert r.json()["watchlist_ids"] == ["bitcoin", "ethereum", "solana", "cardano"]

    r = client.delete("/api/watchlist/ethereum")
    data = r.json()
    assert data["watchlist_ids"] == ["bitcoin", "solana", "cardano"]
    assert [row["id"] for row in data["rows"]] == ["bitcoin", "solana", "cardano"]
    assert data["title"] == "CryptoTracker - Bitcoin, Solana, Cardano"

    client.post("/api/watchlist/notlisted")
    assert [row["id"] for row in client.get("/api/watchlist").json()["rows"]] == ["bitcoin", "solana", "cardano"]


def test_manual_refresh(client):
    r = client.post("/refresh")
    assert r.status_code == 200
    data = r.json()
    assert data["asset_count"] == 10
    assert data["refresh_count"] >= 2
    assert data["last_error"] is None


def test_assets_endpoint(client):
    rows = client.get("/api/assets?limit=10").json()
    assert len(rows) == 10
    assert rows[0]["symbol"] == "BTC"
    assert rows[0]["selected"] is True


def test_listings_proxy_passes_payload_through(client):
    r = client.get("/listings?limit=3&start=2")
    assert r.status_code == 200
    records = r.json()["data"]
    assert [rec["slug"] for rec in records] == ["ethereum", "binancecoin", "solana"]
    assert "USD" in records[0]["quote"]


def test_listings_proxy_rejects_bad_params(client):
    r = client.get("/listings?limit=0")
    assert r.status_code == 400
    assert "error" in r.json()

    r = client.get("/listings?limit=abc")
    assert r.status_code == 400


def test_history_proxy(client):
    r = client.get("/history")
    assert r.status_code == 400
    assert r.json() == {"error": "Cryptocurrency ID is required"}

    r = client.get("/history?id=doesnotexist")
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to fetch cryptocurrency data"}

    r = client.get("/history?id=bitcoin&timeframe=7d")
    assert r.status_code == 200
    assert len(r.json()["data"]["quotes"]) == 7

    r = client.get("/history?id=bitcoin&days=3")
    assert len(r.json()["data"]["quotes"]) == 3


def test_metrics_exposed(client):
    r = client.get("/metrics")
    assert r.status_code == 200
