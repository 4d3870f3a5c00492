"""
On-chain order book access: market loader protocols and the HTTP client.
"""

from .base import MarketLoadError, MarketLoader, OrderBookMarket, PriceLevel
from ._client import HttpOrderBookClient, HttpOrderBookMarket

__all__ = [
    "HttpOrderBookClient",
    "HttpOrderBookMarket",
    "MarketLoadError",
    "MarketLoader",
    "OrderBookMarket",
    "PriceLevel",
]
