from __future__ import annotations

import logging

from price_oracle.ingestion.orchestrator import PriceOrchestrator
from price_oracle.models import RefreshSummary
from price_oracle.storage import PriceCacheStore

logger = logging.getLogger(__name__)


class EmptySnapshotError(RuntimeError):
    """A refresh produced no prices; the previous snapshot is left in place."""

    def __init__(self) -> None:
        super().__init__("No prices fetched, skipping update.")


async def refresh_and_publish(orchestrator: PriceOrchestrator, store: PriceCacheStore) -> RefreshSummary:
    """Run the orchestrator and publish its snapshot unless it is empty."""
    await orchestrator.force_refresh()
    records = orchestrator.get_all()
    if not records:
        logger.error("Refresh returned no prices; keeping the previous snapshot")
        raise EmptySnapshotError()

    count = store.publish(records)
    return RefreshSummary(
        success=True,
        count=count,
        reference_price_usd=orchestrator.reference_price_usd,
        degraded=orchestrator.reference_price_usd <= 0,
    )
