from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence

import pandas as pd
from pydantic import TypeAdapter, ValidationError

from price_oracle.models import PriceRecord

logger = logging.getLogger(__name__)

_records_adapter = TypeAdapter(List[PriceRecord])


class PriceCacheStore(Protocol):
    """Shared snapshot cache read by downstream consumers."""

    def publish(self, records: Sequence[PriceRecord]) -> int: ...

    def load(self) -> List[PriceRecord]: ...

    def export_csv(self, destination: Path) -> int: ...


class JsonPriceCacheStore:
    """JSON document holding the latest snapshot under a cache key."""

    def __init__(self, path: Path, key: str = "GLOBAL_PRICE_CACHE") -> None:
        self.path = path
        self.key = key
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _safe_read(self) -> Dict[str, Any]:
        """Read the document defensively; if corrupted/unreadable, return empty and log."""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                document = json.load(fh)
            return document if isinstance(document, dict) else {}
        except Exception as exc:  # noqa: BLE001
            logger.warning("Price cache unreadable at %s, resetting: %s", self.path, exc)
            return {}

    def publish(self, records: Sequence[PriceRecord]) -> int:
        """Replace the cached snapshot. Other keys in the document are kept."""
        document = self._safe_read()
        document[self.key] = _records_adapter.dump_python(list(records), mode="json")

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(document, fh, indent=2)
        os.replace(tmp_path, self.path)

        logger.info("Published %s prices to %s[%s]", len(records), self.path, self.key)
        return len(records)

    def load(self) -> List[PriceRecord]:
        raw = self._safe_read().get(self.key)
        if not raw:
            return []
        try:
            return _records_adapter.validate_python(raw)
        except ValidationError as exc:
            logger.warning("Cached snapshot under %s is invalid: %s", self.key, exc)
            return []

    def export_csv(self, destination: Path) -> int:
        destination.parent.mkdir(parents=True, exist_ok=True)
        records = self.load()
        if not records:
            logger.warning("No cached snapshot at %s. Nothing to export.", self.path)
            return 0

        df = pd.DataFrame([r.model_dump() for r in records])
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
        df.to_csv(destination, index=False)
        logger.info("Exported %s rows to %s", len(df), destination)
        return len(df)
