from __future__ import annotations

import logging
import math
from typing import Any, List, Optional, Protocol

import httpx

from price_oracle.config import Settings
from price_oracle.models import NormalizedQuote

logger = logging.getLogger(__name__)

DISPLAY_BASE_URL = "https://dexscreener.com"


class QuoteSource(Protocol):
    name: str
    provides_fdv: bool

    async def fetch_quote(
        self, client: httpx.AsyncClient, network: str, pool_address: str, symbol: str, native: bool = False
    ) -> Optional[NormalizedQuote]: ...


def display_url(network: str, pool_address: str) -> str:
    """Public chart link for a pool, independent of which source priced it."""
    return f"{DISPLAY_BASE_URL}/{network}/{pool_address}"


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class DexScreenerSource:
    """DexScreener pair endpoint (no API key).

    With ``native=True`` the quote is in the pair's quote token (``priceNative``)
    and the FDV is rescaled into the same unit; otherwise it is in USD.
    """

    name = "dexscreener"
    provides_fdv = True

    def __init__(self, base_url: str = "https://api.dexscreener.com") -> None:
        self.base_url = base_url.rstrip("/")

    async def fetch_quote(
        self, client: httpx.AsyncClient, network: str, pool_address: str, symbol: str, native: bool = False
    ) -> Optional[NormalizedQuote]:
        url = f"{self.base_url}/latest/dex/pairs/{network}/{pool_address}"
        resp = await client.get(url)
        resp.raise_for_status()
        payload = resp.json() or {}

        pair = payload.get("pair")
        if not pair:
            pairs = payload.get("pairs") or []
            pair = pairs[0] if pairs else None
        if not pair:
            logger.debug("No %s pair for %s on %s", self.name, pool_address, network)
            return None

        price_usd = _to_float(pair.get("priceUsd"))
        fdv = _to_float(pair.get("fdv"))
        if native:
            price = _to_float(pair.get("priceNative"))
            # fdv is reported in USD; priceUsd / priceNative is the quote token's USD price.
            if fdv is not None and price and price_usd and price_usd > 0:
                fdv = fdv * price / price_usd
            else:
                fdv = None
        else:
            price = price_usd
        if price is None or price <= 0:
            return None

        change = (pair.get("priceChange") or {}).get("h24")
        return NormalizedQuote(price_usd=price, percent_change=_to_float(change), fully_diluted_value=fdv)


class GeckoTerminalSource:
    """GeckoTerminal pool endpoint (no API key). Carries no FDV for pool quotes.

    With ``native=True`` the token is priced in the other side of the pool
    (``*_price_quote_token`` / ``*_price_base_token``); otherwise in USD.
    """

    name = "geckoterminal"
    provides_fdv = False

    def __init__(self, base_url: str = "https://api.geckoterminal.com/api/v2") -> None:
        self.base_url = base_url.rstrip("/")

    async def fetch_quote(
        self, client: httpx.AsyncClient, network: str, pool_address: str, symbol: str, native: bool = False
    ) -> Optional[NormalizedQuote]:
        url = f"{self.base_url}/networks/{network}/pools/{pool_address}"
        resp = await client.get(url, headers={"Accept": "application/json"})
        resp.raise_for_status()
        payload = resp.json() or {}

        attributes = (payload.get("data") or {}).get("attributes") or {}
        if not attributes:
            return None

        side = "base"
        pool_name = str(attributes.get("name") or "")
        if " / " in pool_name:
            _, quote_side = pool_name.split(" / ", 1)
            if symbol and quote_side.strip().lstrip("$").upper() == symbol.upper():
                side = "quote"

        if native:
            other = "quote" if side == "base" else "base"
            price_field = f"{side}_token_price_{other}_token"
        else:
            price_field = f"{side}_token_price_usd"

        price = _to_float(attributes.get(price_field))
        if price is None or price <= 0:
            return None

        change = (attributes.get("price_change_percentage") or {}).get("h24")
        return NormalizedQuote(price_usd=price, percent_change=_to_float(change))


def default_sources(settings: Settings) -> List[QuoteSource]:
    """Primary then secondary source."""
    return [
        DexScreenerSource(base_url=settings.dexscreener_base_url),
        GeckoTerminalSource(base_url=settings.geckoterminal_base_url),
    ]
