from __future__ import annotations

import argparse
import asyncio
import logging
import time

from price_oracle.config import settings
from price_oracle.ingestion.orchestrator import build_orchestrator
from price_oracle.publish import EmptySnapshotError, refresh_and_publish
from price_oracle.storage import JsonPriceCacheStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Periodically refresh prices and publish them to the shared cache.")
    parser.add_argument(
        "--interval",
        type=int,
        default=60,
        help="Interval in seconds between refreshes (default: 60s).",
    )
    return parser.parse_args()


async def main() -> None:
    args = parse_args()
    orchestrator = build_orchestrator()
    store = JsonPriceCacheStore(settings.price_cache_path, key=settings.price_cache_key)
    logger.info("Starting refresh loop with interval %s seconds", args.interval)

    while True:
        start = time.time()
        try:
            summary = await refresh_and_publish(orchestrator, store)
            logger.info("Refresh completed: %s", summary.model_dump())
        except EmptySnapshotError as exc:
            logger.warning("Refresh skipped: %s", exc)

        elapsed = time.time() - start
        sleep_for = max(0, args.interval - elapsed)
        await asyncio.sleep(sleep_for)


if __name__ == "__main__":
    asyncio.run(main())
