import pytest
from fastapi.testclient import TestClient

from price_oracle.api import main
from price_oracle.ingestion.orchestrator import PriceOrchestrator
from price_oracle.models import NormalizedQuote
from price_oracle.storage import JsonPriceCacheStore


@pytest.fixture
def primary(make_source):
    return make_source(
        "primary",
        quotes={"0xpoola": NormalizedQuote(price_usd=2.0, percent_change=25), "0xpoolb": NormalizedQuote(price_usd=10.0)},
    )


@pytest.fixture
def client(monkeypatch, tmp_path, primary, virtual_token, foo_token):
    orchestrator = PriceOrchestrator([virtual_token, foo_token], [primary])
    monkeypatch.setattr(main, "orchestrator", orchestrator)
    monkeypatch.setattr(main, "store", JsonPriceCacheStore(tmp_path / "cache.json"))
    with TestClient(main.app) as test_client:
        yield test_client


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_tokens(client):
    body = client.get("/tokens").json()
    assert [t["id"] for t in body] == ["virtual", "foo"]


def test_refresh_publishes_and_serves_snapshot(client):
    resp = client.post("/prices/refresh")
    assert resp.status_code == 200
    assert resp.json()["count"] == 2

    cached = client.get("/prices").json()
    assert [r["symbol"] for r in cached] == ["VIRTUAL", "FOO"]
    assert cached[1]["live_price"] == 20.0

    only_foo = client.get("/prices", params={"symbol": "foo"}).json()
    assert [r["symbol"] for r in only_foo] == ["FOO"]

    live = client.get("/prices/live").json()
    assert len(live) == 2


def test_refresh_rejects_empty_snapshot(client, primary):
    primary.quotes.clear()

    resp = client.post("/prices/refresh")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "No prices fetched, skipping update."}
    assert client.get("/prices").json() == []
