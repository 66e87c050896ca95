from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Optional, Sequence

import httpx

from price_oracle.ingestion.sources import QuoteSource, display_url
from price_oracle.models import NormalizedQuote, PriceRecord, QuoteOutcome, QuoteStatus, Token
from price_oracle.pricing.baseline import derive_baseline

logger = logging.getLogger(__name__)


def _usable(quote: Optional[NormalizedQuote]) -> bool:
    if quote is None or quote.price_usd is None:
        return False
    return math.isfinite(quote.price_usd) and quote.price_usd > 0


def build_record(token: Token, quote: NormalizedQuote, source: QuoteSource, network: str) -> PriceRecord:
    """Turn a usable quote into a record, deriving the baseline price."""
    live = float(quote.price_usd)
    baseline = derive_baseline(live, quote.percent_change)
    fdv = quote.fully_diluted_value if source.provides_fdv else None
    return PriceRecord(
        token_id=token.id,
        symbol=token.symbol,
        live_price=live,
        baseline_price=baseline if baseline > 0 else live,
        percent_change=quote.percent_change or 0.0,
        fully_diluted_value=fdv or 0.0,
        timestamp=datetime.now(timezone.utc),
        source=source.name,
        display_url=display_url(network, token.pool_address or ""),
    )


async def acquire_quote(
    client: httpx.AsyncClient,
    token: Token,
    sources: Sequence[QuoteSource],
    default_network: str = "base",
    native: bool = False,
) -> QuoteOutcome:
    """Try each source in order and return the first usable quote.

    A source that raises is logged and skipped; the outcome is ERROR only when
    no source answered and at least one of them failed. With ``native`` the
    quote is requested in the pool's counter token instead of USD.
    """
    if not token.pool_address:
        logger.debug("Skipping %s: no pool address", token.symbol)
        return QuoteOutcome(status=QuoteStatus.NO_DATA)

    network = token.network or default_network
    last_error: Optional[str] = None
    for source in sources:
        try:
            quote = await source.fetch_quote(client, network, token.pool_address, token.symbol, native=native)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Error fetching %s from %s: %s", token.symbol, source.name, exc)
            last_error = f"{source.name}: {exc}"
            continue
        if _usable(quote):
            return QuoteOutcome(status=QuoteStatus.QUOTE, record=build_record(token, quote, source, network))

    if last_error:
        return QuoteOutcome(status=QuoteStatus.ERROR, error=last_error)
    return QuoteOutcome(status=QuoteStatus.NO_DATA)
