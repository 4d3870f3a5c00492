"""
Interfaces the poller needs from an on-chain order book.
"""

from typing import List, Protocol, Tuple

# (price, size), best level first
PriceLevel = Tuple[float, float]


class MarketLoadError(Exception):
    """A market reference could not be resolved to an order book."""


class OrderBookMarket(Protocol):
    async def load_bids(self, depth: int = 1) -> List[PriceLevel]: ...

    async def load_asks(self, depth: int = 1) -> List[PriceLevel]: ...


class MarketLoader(Protocol):
    async def load_market(
        self, market_address: str, program_address: str
    ) -> OrderBookMarket: ...

    async def aclose(self) -> None: ...
