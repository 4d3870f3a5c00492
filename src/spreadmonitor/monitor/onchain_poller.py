"""
On-chain order book polling for the Spread Monitor.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from spreadmonitor.models import PairConfig
from spreadmonitor.monitor.config import (
    ORDERBOOK_DEPTH,
    POLL_INTERVAL_SECONDS,
    STARTUP_RETRY_DELAY_SECONDS,
)
from spreadmonitor.monitor.state import PriceStore
from spreadmonitor.orderbook import MarketLoader, OrderBookMarket

logger = logging.getLogger(__name__)

CycleCallback = Callable[[], Awaitable[Any]]


def mid_price(bids: list, asks: list) -> Optional[float]:
    """
    Midpoint of the best bid and best ask.

    Returns None when either side of the book is empty.
    """
    if not bids or not asks:
        return None
    best_bid = bids[0][0]
    best_ask = asks[0][0]
    if not best_bid or not best_ask:
        return None
    return (best_bid + best_ask) / 2


class OnChainFeedPoller:
    """
    Periodically samples the top of each on-chain order book.

    ## Lifecycle
    1. `initialize()` resolves one market handle per pair. A pair whose
       market fails to resolve is skipped for the rest of the process.
    2. `run()` awaits a first full cycle (retrying the whole startup after
       `startup_retry_delay` if it raises), then ticks every `poll_interval`.

    ## Cycles
    Every tick starts one cycle in the background. A cycle fetches all
    resolved pairs concurrently and calls `on_cycle` once when every
    fetch has finished, whether or not any of them succeeded. A pair whose
    previous fetch is still in flight is left out of new cycles, so a slow
    market only delays itself.

    ## Error Handling
    A failed or empty fetch leaves that pair's previous price in place;
    the error is logged and never propagated.
    """

    def __init__(
        self,
        store: PriceStore,
        pairs: List[PairConfig],
        loader: MarketLoader,
        on_cycle: Optional[CycleCallback] = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        startup_retry_delay: float = STARTUP_RETRY_DELAY_SECONDS,
        depth: int = ORDERBOOK_DEPTH,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.pairs = pairs
        self.loader = loader
        self.poll_interval = poll_interval
        self.startup_retry_delay = startup_retry_delay
        self.depth = depth
        self._on_cycle = on_cycle
        self._sleep = sleep

        # Pair name -> resolved order book
        self.markets: Dict[str, OrderBookMarket] = {}
        self._initialized = False
        self._in_flight: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._running = False

    async def initialize(self) -> None:
        """Resolve a market handle for every pair; failures are logged and skipped."""
        if self._initialized:
            return

        for pair in self.pairs:
            try:
                market = await self.loader.load_market(
                    pair.onchain_market_address, pair.onchain_program_address
                )
                self.markets[pair.name] = market
                logger.info(f"Loaded market for {pair.name}")
            except Exception as e:
                logger.error(f"Error loading market for {pair.name}: {e}")

        self._initialized = True
        logger.info(f"Resolved {len(self.markets)}/{len(self.pairs)} on-chain markets")

    async def poll_pair(self, pair: str, market: OrderBookMarket) -> bool:
        """
        Fetch one pair's top of book and store its mid price.

        ## Returns
        - `True` if a new price was stored
        """
        self._in_flight.add(pair)
        try:
            bids, asks = await asyncio.gather(
                market.load_bids(self.depth), market.load_asks(self.depth)
            )
            price = mid_price(bids, asks)
            if price is None:
                logger.debug(f"Empty order book side for {pair}, keeping last price")
                return False
            return self.store.set_onchain_price(pair, price)

        except Exception as e:
            logger.error(f"Error updating on-chain price for {pair}: {e}")
            return False

        finally:
            self._in_flight.discard(pair)

    async def poll_cycle(self) -> int:
        """
        Poll every resolved pair not already in flight, then trigger one broadcast.

        ## Returns
        - Number of pairs whose price was updated
        """
        due = {
            pair: market
            for pair, market in self.markets.items()
            if pair not in self._in_flight
        }
        results = await asyncio.gather(
            *(self.poll_pair(pair, market) for pair, market in due.items())
        )

        if self._on_cycle is not None:
            await self._on_cycle()
        return sum(1 for updated in results if updated)

    async def start(self) -> None:
        """Resolve markets and complete a first cycle, retrying until it succeeds."""
        while True:
            try:
                await self.initialize()
                updated = await self.poll_cycle()
                logger.info(f"On-chain polling started ({updated} prices on first cycle)")
                return
            except Exception as e:
                logger.error(
                    f"Error starting on-chain polling: {e}. "
                    f"Retrying in {self.startup_retry_delay}s"
                )
                await self._sleep(self.startup_retry_delay)

    async def run(self) -> None:
        """Start, then launch one background cycle every `poll_interval` until stopped."""
        self._running = True
        await self.start()

        while self._running:
            await self._sleep(self.poll_interval)
            if not self._running:
                break
            self._spawn_cycle()

    def _spawn_cycle(self) -> asyncio.Task:
        task = asyncio.create_task(self.poll_cycle())
        self._tasks.add(task)
        task.add_done_callback(self._cycle_done)
        return task

    def _cycle_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"On-chain poll cycle failed: {exc}")

    async def stop(self) -> None:
        """Stop ticking and cancel any cycles still waiting on fetches."""
        self._running = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("On-chain poller stopped")
