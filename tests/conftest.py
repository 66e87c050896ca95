from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import pytest

from price_oracle.models import NormalizedQuote, Token


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeSource:
    """Quote source answering from a pool -> quote table."""

    def __init__(self, name: str, quotes=None, errors=None, provides_fdv: bool = True) -> None:
        self.name = name
        self.provides_fdv = provides_fdv
        self.quotes: Dict[str, Optional[NormalizedQuote]] = dict(quotes or {})
        self.errors: Dict[str, Exception] = dict(errors or {})
        self.calls: List[Tuple[str, str, str]] = []
        self.native_flags: Dict[str, bool] = {}

    async def fetch_quote(self, client, network, pool_address, symbol, native=False):
        self.calls.append((network, pool_address, symbol))
        self.native_flags[symbol] = native
        if pool_address in self.errors:
            raise self.errors[pool_address]
        return self.quotes.get(pool_address)


@pytest.fixture
def make_source():
    return FakeSource


@pytest.fixture
def virtual_token() -> Token:
    return Token(id="virtual", symbol="VIRTUAL", name="Virtual Protocol", network="base", pool_address="0xpoola")


@pytest.fixture
def foo_token() -> Token:
    return Token(id="foo", symbol="FOO", name="Foo", network="base", pool_address="0xpoolb")
