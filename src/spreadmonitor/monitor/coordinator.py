"""
Wiring and lifecycle for the Spread Monitor.
"""

import asyncio
import logging
from typing import Optional

from spreadmonitor.monitor.config import MonitorSettings
from spreadmonitor.monitor.exchange_feed import ExchangeFeedAdapter
from spreadmonitor.monitor.hub import SubscriptionHub
from spreadmonitor.monitor.onchain_poller import OnChainFeedPoller
from spreadmonitor.monitor.spread import SpreadCalculator
from spreadmonitor.monitor.state import PriceStore
from spreadmonitor.orderbook import HttpOrderBookClient, MarketLoader

logger = logging.getLogger(__name__)


class MonitorCoordinator:
    """
    Owns the pair table and fee rates and connects the components.

    ## Data Flow
    ```
    ExchangeFeedAdapter --\\
                           +--> PriceStore --> SubscriptionHub.broadcast_cycle()
    OnChainFeedPoller ----/
    ```
    Every exchange tick and every completed on-chain cycle triggers one
    broadcast cycle.

    ## Startup
    1. Resolve on-chain market handles (per-pair failures are skipped)
    2. Open the client-facing socket (failure is fatal)
    3. Run the exchange feed and the on-chain poller concurrently
    """

    def __init__(
        self,
        settings: Optional[MonitorSettings] = None,
        loader: Optional[MarketLoader] = None,
        store: Optional[PriceStore] = None,
    ) -> None:
        self.settings = settings or MonitorSettings()
        self.pairs = list(self.settings.pairs)
        self.store = store or PriceStore()
        self.loader = loader or HttpOrderBookClient(
            self.settings.orderbook_api_url, timeout=self.settings.http_timeout
        )

        self.calculator = SpreadCalculator(
            exchange_fee_rate=self.settings.exchange_fee_rate,
            onchain_fee_rate=self.settings.onchain_fee_rate,
        )
        self.hub = SubscriptionHub(
            self.store,
            self.calculator,
            [pair.name for pair in self.pairs],
            host=self.settings.host,
            port=self.settings.port,
        )
        self.exchange_feed = ExchangeFeedAdapter(
            self.store,
            self.pairs,
            self.settings.stream_url,
            on_update=self.broadcast,
            reconnect_delay=self.settings.reconnect_delay,
        )
        self.poller = OnChainFeedPoller(
            self.store,
            self.pairs,
            self.loader,
            on_cycle=self.broadcast,
            poll_interval=self.settings.poll_interval,
            startup_retry_delay=self.settings.startup_retry_delay,
            depth=self.settings.orderbook_depth,
        )
        self._closed = False

    @property
    def profitability_threshold(self) -> float:
        return self.settings.profitability_threshold

    async def broadcast(self) -> int:
        return await self.hub.broadcast_cycle()

    async def start(self) -> None:
        """
        Resolve markets and open the listening socket.

        ## Raises
        - `OSError`: if the listening socket cannot be opened
        """
        await self.poller.initialize()
        await self.hub.start()

    async def run(self) -> None:
        """Start, then run both feeds until cancelled or shut down."""
        await self.start()
        logger.info("Spread monitor initialized and running...")

        async with asyncio.TaskGroup() as tg:
            tg.create_task(self.exchange_feed.run())
            tg.create_task(self.poller.run())

    async def shutdown(self) -> None:
        """Best-effort drain: close upstream connections, then every client. Idempotent."""
        if self._closed:
            return
        self._closed = True

        logger.info("Cleaning up...")
        await self.exchange_feed.stop()
        await self.poller.stop()
        await self.hub.close()
        await self.loader.aclose()
