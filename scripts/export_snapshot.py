from __future__ import annotations

import argparse
import logging
from pathlib import Path

from price_oracle.config import settings
from price_oracle.storage import JsonPriceCacheStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export the cached price snapshot to CSV.")
    parser.add_argument(
        "--output",
        type=Path,
        default=settings.data_dir / "export" / "price_snapshot.csv",
        help="Destination CSV path (directories will be created).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    store = JsonPriceCacheStore(settings.price_cache_path, key=settings.price_cache_key)
    rows = store.export_csv(args.output)
    logger.info("Export complete: %s rows -> %s", rows, args.output)


if __name__ == "__main__":
    main()
