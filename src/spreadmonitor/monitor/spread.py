"""
Fee-adjusted spread calculation for the Spread Monitor.
"""

from typing import Iterable, List, Optional

from spreadmonitor.models import SpreadRecord
from spreadmonitor.monitor.config import EXCHANGE_FEE_RATE, ONCHAIN_FEE_RATE
from spreadmonitor.monitor.state import PriceStore
from spreadmonitor.monitor.utils import format_percent, utc_timestamp


def compute_spread(
    pair: str,
    exchange_price: float,
    onchain_price: float,
    exchange_fee_rate: float = EXCHANGE_FEE_RATE,
    onchain_fee_rate: float = ONCHAIN_FEE_RATE,
    timestamp: Optional[str] = None,
) -> SpreadRecord:
    """
    Compute the fee-adjusted spread between the two venues for one pair.

    ## Algorithm
    1. Discount each price by its venue fee rate
    2. `difference = effective_exchange - effective_onchain`
    3. `percent = difference / effective_onchain * 100`, two decimals with
       ties rounded away from zero

    The raw (non-discounted) prices are reported alongside the difference.
    Callers guarantee both prices are positive and finite.
    """
    effective_exchange = exchange_price * (1 - exchange_fee_rate)
    effective_onchain = onchain_price * (1 - onchain_fee_rate)
    difference = effective_exchange - effective_onchain
    percent = difference / effective_onchain * 100

    return SpreadRecord(
        pair=pair,
        exchange_price=exchange_price,
        onchain_price=onchain_price,
        price_difference=difference,
        percent_difference=format_percent(percent),
        timestamp=timestamp or utc_timestamp(),
    )


class SpreadCalculator:
    """Binds venue fee rates to `compute_spread` and applies it to a PriceStore."""

    def __init__(
        self,
        exchange_fee_rate: float = EXCHANGE_FEE_RATE,
        onchain_fee_rate: float = ONCHAIN_FEE_RATE,
    ) -> None:
        self.exchange_fee_rate = exchange_fee_rate
        self.onchain_fee_rate = onchain_fee_rate

    def compute(
        self, pair: str, exchange_price: float, onchain_price: float
    ) -> SpreadRecord:
        return compute_spread(
            pair,
            exchange_price,
            onchain_price,
            self.exchange_fee_rate,
            self.onchain_fee_rate,
        )

    def for_pair(self, store: PriceStore, pair: str) -> Optional[SpreadRecord]:
        prices = store.get_both(pair)
        if prices is None:
            return None
        return self.compute(pair, *prices)

    def snapshot(self, store: PriceStore, pairs: Iterable[str]) -> List[SpreadRecord]:
        """Records for every pair with both prices present, in `pairs` order."""
        records = []
        for pair in pairs:
            record = self.for_pair(store, pair)
            if record is not None:
                records.append(record)
        return records
