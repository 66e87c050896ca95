from __future__ import annotations

import asyncio
import json
import logging
import sys

from price_oracle.config import settings
from price_oracle.ingestion.orchestrator import build_orchestrator
from price_oracle.publish import EmptySnapshotError, refresh_and_publish
from price_oracle.storage import JsonPriceCacheStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


async def main() -> int:
    orchestrator = build_orchestrator()
    store = JsonPriceCacheStore(settings.price_cache_path, key=settings.price_cache_key)
    try:
        summary = await refresh_and_publish(orchestrator, store)
    except EmptySnapshotError as exc:
        logger.error("Refresh failed: %s", exc)
        return 1
    logger.info("Refresh summary: %s", summary.model_dump())
    print(json.dumps(summary.model_dump(), indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
