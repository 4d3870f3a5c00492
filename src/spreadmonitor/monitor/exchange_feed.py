"""
Centralized exchange ticker feed for the Spread Monitor.

Keeps one combined-stream WebSocket open for every configured symbol and
writes each ticker's last price into the PriceStore.

## Connection Lifecycle
```
DISCONNECTED -> CONNECTING -> STREAMING -> DISCONNECTED (sleep, retry)
```
A failed connect or a dropped stream both end in DISCONNECTED, followed
by a fixed reconnect delay. There is no backoff growth and no retry cap.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import websockets
from pydantic import ValidationError

from spreadmonitor.models import PairConfig, TickerStreamMessage
from spreadmonitor.monitor.config import RECONNECT_DELAY_SECONDS
from spreadmonitor.monitor.state import PriceStore

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[], Awaitable[Any]]


class FeedState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"


class ExchangeFeedAdapter:
    """
    # Exchange Ticker Feed

    ## Message Format
    ```json
    {"stream": "btcusdc@ticker", "data": {"s": "BTCUSDC", "c": "50000.00"}}
    ```
    The stream's base name (before `@`) is matched case-insensitively
    against the configured exchange symbols. Unknown symbols, non-ticker
    payloads and malformed JSON are ignored.

    ## Testing Hooks
    `connect` and `sleep` are injectable so tests can supply a fake
    transport and advance time without real delays.
    """

    def __init__(
        self,
        store: PriceStore,
        pairs: List[PairConfig],
        stream_url: str,
        on_update: Optional[UpdateCallback] = None,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        connect: Callable[[str], Awaitable[Any]] = websockets.connect,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.stream_url = stream_url
        self.reconnect_delay = reconnect_delay
        self._on_update = on_update
        self._connect = connect
        self._sleep = sleep

        # Lower-cased exchange symbol -> pair name
        self._symbol_index: Dict[str, str] = {
            pair.exchange_symbol.lower(): pair.name for pair in pairs
        }

        self.ws: Any = None
        self.state = FeedState.DISCONNECTED
        self.reconnect_attempts = 0
        self._running = False

    def resolve_pair(self, stream_base: str) -> Optional[str]:
        return self._symbol_index.get(stream_base.lower())

    async def run(self) -> None:
        """
        Connect and stream until `stop()` is called.

        Each pass through the loop holds at most one connection; the
        reconnect delay is awaited only after that connection is gone, so
        no second connection can open during the wait.
        """
        self._running = True

        while self._running:
            await self._stream_once()

            if not self._running:
                break

            self.reconnect_attempts += 1
            logger.info(
                f"Reconnecting to exchange stream in {self.reconnect_delay}s "
                f"(attempt {self.reconnect_attempts})"
            )
            await self._sleep(self.reconnect_delay)

        logger.info("Exchange feed stopped")

    async def _stream_once(self) -> None:
        self.state = FeedState.CONNECTING
        try:
            logger.info(f"Connecting to exchange stream: {self.stream_url}")
            self.ws = await self._connect(self.stream_url)
            if not self._running:
                await self.ws.close()
                logger.info("Exchange feed stopped while connecting; connection closed")
                return

            self.state = FeedState.STREAMING
            logger.info("✅ Connected to exchange stream")

            async for message in self.ws:
                await self.handle_message(message)

            if self._running:
                logger.warning("⚠️ Exchange stream closed by server")

        except websockets.exceptions.ConnectionClosed as e:
            logger.warning(f"⚠️ Exchange stream disconnected: {e}")

        except Exception as e:
            logger.error(f"❌ Exchange stream error: {e}")

        finally:
            self.ws = None
            self.state = FeedState.DISCONNECTED

    async def handle_message(self, message: Any) -> bool:
        """
        Apply one inbound ticker message.

        ## Returns
        - `True` if the message resolved to a configured pair and a
          broadcast was triggered, `False` if it was ignored
        """
        try:
            ticker = TickerStreamMessage.model_validate_json(message)
        except ValidationError:
            logger.debug(f"Ignoring non-ticker payload: {str(message)[:100]}")
            return False

        pair = self.resolve_pair(ticker.base_stream)
        if pair is None:
            return False

        self.store.set_exchange_price(pair, ticker.data.last_price)

        if self._on_update is not None:
            await self._on_update()
        return True

    async def stop(self) -> None:
        """Stop reconnecting and close the current connection, if any."""
        self._running = False
        if self.ws is not None:
            await self.ws.close()
            logger.info("✅ Exchange stream connection closed")
