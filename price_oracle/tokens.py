from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from urllib.parse import urlparse

import pandas as pd

from price_oracle.models import Token

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")

NAME_COLUMNS = ("CARD NAME / TOKEN NAME", "name")
SYMBOL_COLUMNS = ("TICKER", "symbol")
LINK_COLUMNS = ("GECKO TERMINAL POOL LINK", "dexscreenerPair", "pool_address")

SEED_TOKENS: List[Token] = [
    Token(
        id="virtual",
        symbol="VIRTUAL",
        name="Virtual Protocol",
        network="base",
        pool_address="0x0b3e328455c4059eeb9e3743215830db5a980191",
    ),
]


def clean_address(value: Optional[str]) -> Optional[str]:
    """Extract the first EVM address from free text, lower-cased."""
    if not value:
        return None
    match = _ADDRESS_RE.search(value)
    return match.group(0).lower() if match else None


def parse_pool_link(link: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Return (network, pool address) from a DexScreener or GeckoTerminal link.

    ``https://dexscreener.com/base/0x..`` and
    ``https://www.geckoterminal.com/base/pools/0x..`` both yield ``("base", "0x..")``.
    Bare addresses give no network.
    """
    if not link:
        return None, None
    address = clean_address(link)
    parsed = urlparse(link)
    if not parsed.scheme or not parsed.netloc:
        return None, address
    parts = [part for part in parsed.path.split("/") if part]
    network = parts[0].lower() if len(parts) >= 2 else None
    return network, address


def sanitize_id(value: str) -> str:
    base = (value or "").lower().lstrip("$")
    return re.sub(r"[^a-z0-9]+", "", base)


def _first(row: Dict[str, Any], columns: Iterable[str]) -> str:
    for column in columns:
        value = row.get(column)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def row_to_token(row: Dict[str, Any], default_network: str = "base") -> Token:
    name = _first(row, NAME_COLUMNS)
    symbol = _first(row, SYMBOL_COLUMNS).replace("$", "").strip().upper()
    network, pool = parse_pool_link(_first(row, LINK_COLUMNS))

    token_id = sanitize_id(symbol) or sanitize_id(name) or "token"
    return Token(
        id=token_id,
        symbol=symbol or token_id.upper(),
        name=name,
        network=network or default_network,
        pool_address=pool,
    )


def _rows_from_json(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        # Spreadsheet exports nest rows under the sheet name.
        for value in payload.values():
            if isinstance(value, list):
                return value
    return []


def load_token_rows(path: Path) -> pd.DataFrame:
    """Read a token list export (JSON or CSV) into a frame of strings."""
    if not path.exists():
        logger.warning("Token list not found at %s", path)
        return pd.DataFrame()

    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype=str)
    else:
        with open(path, "r", encoding="utf-8") as fh:
            df = pd.DataFrame(_rows_from_json(json.load(fh)))

    return df.fillna("").astype(str)


class TokenRegistry:
    """Ordered, de-duplicated set of tokens to quote."""

    def __init__(self, tokens: Iterable[Token]) -> None:
        by_id: Dict[str, Token] = {}
        for token in tokens:
            # Later rows replace earlier ones but keep the first position.
            by_id[token.id] = token
        self._by_id = by_id

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Dict[str, Any]],
        default_network: str = "base",
        seeds: Iterable[Token] = SEED_TOKENS,
    ) -> "TokenRegistry":
        parsed = [row_to_token(row, default_network) for row in rows]
        known = {token.id for token in parsed}
        parsed.extend(seed for seed in seeds if seed.id not in known)
        return cls(parsed)

    @classmethod
    def from_file(cls, path: Path, default_network: str = "base") -> "TokenRegistry":
        df = load_token_rows(path)
        registry = cls.from_rows(df.to_dict(orient="records"), default_network=default_network)
        logger.info("Loaded %s tokens from %s", len(registry), path)
        return registry

    @property
    def tokens(self) -> List[Token]:
        return list(self._by_id.values())

    def get(self, token_id: str) -> Optional[Token]:
        return self._by_id.get(token_id)

    def find_reference(self, reference_id: str) -> Optional[Token]:
        return find_reference(self.tokens, reference_id)

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[Token]:
        return iter(self.tokens)


def is_reference(token: Token, reference_id: str) -> bool:
    reference_id = reference_id.strip().lower()
    return token.id == reference_id or token.symbol == reference_id.upper()


def find_reference(tokens: Iterable[Token], reference_id: str) -> Optional[Token]:
    """First token matching the reference id or its upper-case symbol."""
    return next((token for token in tokens if is_reference(token, reference_id)), None)
