"""
Last-known price state for the Spread Monitor.
"""

import logging
from typing import Dict, Optional, Tuple

from spreadmonitor.monitor.utils import is_valid_price

logger = logging.getLogger(__name__)


class PriceStore:
    """
    Last observed price per pair, kept separately for each venue.

    Entries appear on the first valid observation and are never removed.
    The exchange feed writes the exchange side, the on-chain poller writes
    the on-chain side. All access happens on the event loop, so no locking.
    """

    def __init__(self) -> None:
        self._exchange_prices: Dict[str, float] = {}
        self._onchain_prices: Dict[str, float] = {}

    def set_exchange_price(self, pair: str, value: float) -> bool:
        return self._set(self._exchange_prices, "exchange", pair, value)

    def set_onchain_price(self, pair: str, value: float) -> bool:
        return self._set(self._onchain_prices, "on-chain", pair, value)

    def get_exchange_price(self, pair: str) -> Optional[float]:
        return self._exchange_prices.get(pair)

    def get_onchain_price(self, pair: str) -> Optional[float]:
        return self._onchain_prices.get(pair)

    def get_both(self, pair: str) -> Optional[Tuple[float, float]]:
        """Return (exchange_price, onchain_price), or None if either is missing."""
        exchange_price = self._exchange_prices.get(pair)
        onchain_price = self._onchain_prices.get(pair)
        if exchange_price is None or onchain_price is None:
            return None
        return exchange_price, onchain_price

    def _set(self, prices: Dict[str, float], side: str, pair: str, value) -> bool:
        # A bad tick is dropped, never raised
        if not is_valid_price(value):
            logger.warning(f"Rejected {side} price for {pair}: {value!r}")
            return False

        prices[pair] = float(value)
        logger.debug(f"{side} price for {pair}: {value}")
        return True
