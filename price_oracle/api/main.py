from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from price_oracle.config import settings
from price_oracle.ingestion.orchestrator import ensure_price_orchestrator
from price_oracle.models import PriceRecord, RefreshSummary, Token
from price_oracle.publish import EmptySnapshotError, refresh_and_publish
from price_oracle.storage import JsonPriceCacheStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Token Price Oracle API",
    version="0.1.0",
    description="Reference-anchored token prices published to a shared cache.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

store = JsonPriceCacheStore(settings.price_cache_path, key=settings.price_cache_key)
orchestrator = ensure_price_orchestrator()


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/tokens", response_model=List[Token])
async def list_tokens() -> List[Token]:
    return orchestrator.tokens


@app.post("/prices/refresh", response_model=RefreshSummary)
async def refresh_prices() -> RefreshSummary:
    """Fetch all prices and publish them to the shared cache."""
    try:
        return await refresh_and_publish(orchestrator, store)
    except EmptySnapshotError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.get("/prices", response_model=List[PriceRecord])
async def cached_prices(
    symbol: Optional[str] = Query(None, description="Filter by ticker symbol (upper-case)"),
) -> List[PriceRecord]:
    records = store.load()
    if symbol:
        records = [r for r in records if r.symbol == symbol.upper()]
    return records


@app.get("/prices/live", response_model=List[PriceRecord])
async def live_prices() -> List[PriceRecord]:
    """Latest in-memory run, without fetching."""
    return orchestrator.get_all()
