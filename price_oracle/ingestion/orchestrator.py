from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import httpx

from price_oracle.config import Settings, settings
from price_oracle.ingestion.acquisition import acquire_quote
from price_oracle.ingestion.sources import QuoteSource, default_sources
from price_oracle.models import PriceRecord, QuoteOutcome, QuoteStatus, Token
from price_oracle.tokens import TokenRegistry, find_reference, is_reference

logger = logging.getLogger(__name__)


class PriceOrchestrator:
    """Prices every registry token in USD, anchored on the reference token.

    The reference token is fetched first and its USD price becomes the
    cross-rate. All other tokens are then fetched concurrently; their quotes
    are denominated in the reference token and get multiplied by that rate.
    When the reference cannot be priced the other records keep their raw
    values and carry the reference symbol as their denomination.
    """

    def __init__(
        self,
        tokens: Iterable[Token],
        sources: Iterable[QuoteSource],
        reference_id: str = "virtual",
        default_network: str = "base",
        request_timeout_seconds: float = 15.0,
        fetch_timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.tokens = list(tokens)
        self.sources = list(sources)
        self.reference_id = reference_id.strip().lower()
        self.default_network = default_network
        self.request_timeout_seconds = request_timeout_seconds
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.transport = transport

        self._reference_price_usd = 0.0
        self._results: List[PriceRecord] = []
        self.last_run_at: Optional[datetime] = None

    @property
    def reference_price_usd(self) -> float:
        return self._reference_price_usd

    @property
    def reference_symbol(self) -> str:
        return self.reference_id.upper()

    def get_all(self) -> List[PriceRecord]:
        """Records assembled by the latest run, without fetching."""
        return list(self._results)

    async def force_refresh(self) -> List[PriceRecord]:
        return await self.run()

    async def _acquire(self, client: httpx.AsyncClient, token: Token, native: bool = False) -> QuoteOutcome:
        fetch = acquire_quote(client, token, self.sources, self.default_network, native=native)
        if self.fetch_timeout_seconds is None:
            return await fetch
        try:
            return await asyncio.wait_for(fetch, timeout=self.fetch_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Timed out fetching %s after %ss", token.symbol, self.fetch_timeout_seconds)
            return QuoteOutcome(status=QuoteStatus.ERROR, error="timeout")

    async def _resolve_reference(self, client: httpx.AsyncClient, reference: Optional[Token]) -> Optional[PriceRecord]:
        """Price the reference token in USD; a failure only leaves the cross-rate at 0."""
        if reference is None:
            logger.warning("Reference token %r not in registry", self.reference_id)
            return None
        try:
            outcome = await self._acquire(client, reference)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure fetching reference %s", reference.symbol)
            outcome = QuoteOutcome(status=QuoteStatus.ERROR, error=str(exc))
        if outcome.ok:
            self._reference_price_usd = outcome.record.live_price
            return outcome.record
        logger.warning(
            "Reference token %s unresolved (%s); other prices stay in %s",
            reference.symbol,
            outcome.error or outcome.status.value,
            self.reference_symbol,
        )
        return None

    def _convert(self, record: PriceRecord) -> PriceRecord:
        rate = self._reference_price_usd
        if rate > 0:
            return record.model_copy(
                update={
                    "live_price": record.live_price * rate,
                    "baseline_price": record.baseline_price * rate,
                    "fully_diluted_value": record.fully_diluted_value * rate,
                    "denomination": "USD",
                }
            )
        return record.model_copy(update={"denomination": self.reference_symbol})

    async def run(self) -> List[PriceRecord]:
        """Fetch, convert and assemble one snapshot. Never raises."""
        self._reference_price_usd = 0.0
        self._results = []
        logger.info("Starting fetch for %s tokens", len(self.tokens))

        reference = find_reference(self.tokens, self.reference_id)
        others = [token for token in self.tokens if not is_reference(token, self.reference_id)]

        timeout = httpx.Timeout(self.request_timeout_seconds)
        results: List[PriceRecord] = []
        outcomes: list = []
        try:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=self.transport) as client:
                reference_record = await self._resolve_reference(client, reference)
                if reference_record is not None:
                    results.append(reference_record)

                # Pool quotes of the other tokens are denominated in the reference token.
                outcomes = await asyncio.gather(
                    *(self._acquire(client, token, native=True) for token in others), return_exceptions=True
                )
        except Exception:  # noqa: BLE001
            logger.exception("Price run aborted")

        for token, outcome in zip(others, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Unexpected failure fetching %s: %s", token.symbol, outcome)
                continue
            if outcome.ok:
                results.append(self._convert(outcome.record))

        self._results = results
        self.last_run_at = datetime.now(timezone.utc)
        logger.info(
            "Fetch complete. Reference price: $%s. Total: %s", self._reference_price_usd, len(results)
        )
        return list(results)


def build_orchestrator(
    config: Settings = settings, registry: Optional[TokenRegistry] = None
) -> PriceOrchestrator:
    """Create an orchestrator from settings and the configured token list."""
    registry = registry or TokenRegistry.from_file(config.token_list_path, default_network=config.default_network)
    return PriceOrchestrator(
        tokens=registry.tokens,
        sources=default_sources(config),
        reference_id=config.reference_token_id,
        default_network=config.default_network,
        request_timeout_seconds=config.request_timeout_seconds,
        fetch_timeout_seconds=config.fetch_timeout,
    )


_orchestrator: Optional[PriceOrchestrator] = None


def ensure_price_orchestrator() -> PriceOrchestrator:
    """Process-wide orchestrator, created on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator
