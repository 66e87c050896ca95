from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Token(BaseModel):
    """A quotable token from the registry."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique normalized ticker.")
    symbol: str = Field(..., description="Ticker symbol (upper-case).")
    name: str = Field("", description="Display name.")
    network: Optional[str] = Field(None, description="Provider network slug, e.g. 'base'.")
    pool_address: Optional[str] = Field(None, description="Liquidity pool the token is quoted in.")


class NormalizedQuote(BaseModel):
    """Provider quote reduced to the fields the oracle uses."""

    price_usd: Optional[float] = None
    percent_change: Optional[float] = None
    fully_diluted_value: Optional[float] = None


class PriceRecord(BaseModel):
    """One priced token in a snapshot."""

    token_id: str
    symbol: str
    live_price: float = Field(..., description="Current price.")
    baseline_price: float = Field(..., description="Price at the start of the reporting window.")
    percent_change: float = Field(0.0, description="Move from baseline to live, in percent.")
    fully_diluted_value: float = Field(0.0, description="Fully diluted valuation, 0 when unknown.")
    timestamp: datetime = Field(..., description="Acquisition instant in UTC.")
    source: str = Field(..., description="Name of the source that answered.")
    display_url: str = Field(..., description="Canonical chart link for the pool.")
    denomination: str = Field(
        "USD", description="Currency of the price fields; the reference symbol when conversion was unavailable."
    )


class QuoteStatus(str, Enum):
    QUOTE = "quote"
    NO_DATA = "no_data"
    ERROR = "error"


class QuoteOutcome(BaseModel):
    """Result of acquiring one token's quote."""

    status: QuoteStatus
    record: Optional[PriceRecord] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is QuoteStatus.QUOTE and self.record is not None


class RefreshSummary(BaseModel):
    """Outcome of a refresh-and-publish run."""

    success: bool
    count: int
    reference_price_usd: float = 0.0
    degraded: bool = False
