import httpx
import pytest

from price_oracle.ingestion.sources import DexScreenerSource, GeckoTerminalSource, display_url

pytestmark = pytest.mark.anyio

POOL = "0x0b3e328455c4059eeb9e3743215830db5a980191"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_dexscreener_parses_pair():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(
            200,
            json={"pair": {"priceUsd": "1.2345", "priceChange": {"h24": -3.5}, "fdv": 1234567}},
        )

    async with _client(handler) as client:
        quote = await DexScreenerSource().fetch_quote(client, "base", POOL, "VIRTUAL")

    assert seen == [f"/latest/dex/pairs/base/{POOL}"]
    assert quote.price_usd == pytest.approx(1.2345)
    assert quote.percent_change == -3.5
    assert quote.fully_diluted_value == 1234567


async def test_dexscreener_falls_back_to_pairs_list():
    def handler(request):
        return httpx.Response(200, json={"pairs": [{"priceUsd": "0.5"}]})

    async with _client(handler) as client:
        quote = await DexScreenerSource().fetch_quote(client, "base", POOL, "FOO")

    assert quote.price_usd == 0.5
    assert quote.percent_change is None
    assert quote.fully_diluted_value is None


@pytest.mark.parametrize("payload", [{"pair": None, "pairs": None}, {"pair": {"priceUsd": "0"}}, {"pair": {"priceUsd": "n/a"}}])
async def test_dexscreener_without_usable_price_returns_none(payload):
    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        assert await DexScreenerSource().fetch_quote(client, "base", POOL, "FOO") is None


async def test_dexscreener_http_error_raises():
    async with _client(lambda request: httpx.Response(503)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await DexScreenerSource().fetch_quote(client, "base", POOL, "FOO")


async def test_geckoterminal_uses_base_side_by_default():
    seen = []

    def handler(request):
        seen.append(request.url.path)
        return httpx.Response(
            200,
            json={
                "data": {
                    "attributes": {
                        "name": "FOO / VIRTUAL",
                        "base_token_price_usd": "0.02",
                        "quote_token_price_usd": "1.9",
                        "price_change_percentage": {"h24": "12.5"},
                        "fdv_usd": "5000",
                    }
                }
            },
        )

    async with _client(handler) as client:
        quote = await GeckoTerminalSource().fetch_quote(client, "base", POOL, "FOO")

    assert seen == [f"/api/v2/networks/base/pools/{POOL}"]
    assert quote.price_usd == 0.02
    assert quote.percent_change == 12.5
    assert quote.fully_diluted_value is None


async def test_geckoterminal_picks_quote_side_for_matching_symbol():
    payload = {
        "data": {
            "attributes": {
                "name": "WETH / VIRTUAL",
                "base_token_price_usd": "3000",
                "quote_token_price_usd": "1.9",
            }
        }
    }
    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        quote = await GeckoTerminalSource().fetch_quote(client, "base", POOL, "VIRTUAL")

    assert quote.price_usd == 1.9


async def test_geckoterminal_empty_payload_returns_none():
    async with _client(lambda request: httpx.Response(200, json={"data": {}})) as client:
        assert await GeckoTerminalSource().fetch_quote(client, "base", POOL, "FOO") is None


def test_display_url():
    assert display_url("base", POOL) == f"https://dexscreener.com/base/{POOL}"


async def test_dexscreener_native_quote_uses_price_native_and_rescales_fdv():
    payload = {"pair": {"priceUsd": "1.0", "priceNative": "0.5", "priceChange": {"h24": 10}, "fdv": 1000}}
    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        quote = await DexScreenerSource().fetch_quote(client, "base", POOL, "FOO", native=True)

    assert quote.price_usd == 0.5
    assert quote.fully_diluted_value == pytest.approx(500)
    assert quote.percent_change == 10


async def test_dexscreener_native_quote_without_native_price_returns_none():
    payload = {"pair": {"priceUsd": "1.0"}}
    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        assert await DexScreenerSource().fetch_quote(client, "base", POOL, "FOO", native=True) is None


@pytest.mark.parametrize("symbol, expected", [("FOO", 0.01), ("VIRTUAL", 100.0)])
async def test_geckoterminal_native_quote_prices_against_other_side(symbol, expected):
    payload = {
        "data": {
            "attributes": {
                "name": "FOO / VIRTUAL",
                "base_token_price_usd": "0.02",
                "base_token_price_quote_token": "0.01",
                "quote_token_price_usd": "2.0",
                "quote_token_price_base_token": "100",
            }
        }
    }
    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        quote = await GeckoTerminalSource().fetch_quote(client, "base", POOL, symbol, native=True)

    assert quote.price_usd == expected
