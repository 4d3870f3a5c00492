"""
Client-facing WebSocket server for the Spread Monitor.

## Protocol
- Subscribe: `{"method": "SUBSCRIBE", "params": ["difference.all"]}` or
  `{"method": "SUBSCRIBE", "params": ["difference.BTC/USDC", ...]}`
- Push: `{"type": "all", "data": [SpreadRecord, ...]}`

No acknowledgements, no unsubscribe, no error replies. Malformed input is
logged and ignored; the connection stays open.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

import websockets
from pydantic import ValidationError
from websockets.protocol import State

from spreadmonitor.models import SpreadRecord, SubscribeRequest, Topic
from spreadmonitor.monitor.config import LISTEN_HOST, LISTEN_PORT
from spreadmonitor.monitor.spread import SpreadCalculator
from spreadmonitor.monitor.state import PriceStore

logger = logging.getLogger(__name__)

METHOD_SUBSCRIBE = "SUBSCRIBE"
MESSAGE_TYPE_ALL = "all"


def encode_batch(records: Iterable[SpreadRecord]) -> str:
    return json.dumps(
        {"type": MESSAGE_TYPE_ALL, "data": [record.to_wire() for record in records]}
    )


class Subscriber:
    """A connected client and the topics it has subscribed to."""

    def __init__(self, websocket: Any) -> None:
        self.websocket = websocket
        self.topics: Set[Topic] = set()

    @property
    def is_active(self) -> bool:
        return bool(self.topics)

    @property
    def wants_all(self) -> bool:
        return any(topic.is_all for topic in self.topics)

    def wants(self, pair: str) -> bool:
        return any(topic.matches(pair) for topic in self.topics)

    def select(self, records: List[SpreadRecord]) -> List[SpreadRecord]:
        if self.wants_all:
            return records
        return [record for record in records if self.wants(record.pair)]


class SubscriptionHub:
    """
    # Subscription Hub

    Tracks connected clients and fans spread snapshots out to them.

    ## Broadcast Rules
    - Only pairs with both prices present are included
    - Wildcard subscribers receive every available record
    - Pair subscribers receive only their pairs
    - Clients without a subscription receive nothing
    - Closed or closing connections are skipped

    ## Direct Queries
    A SUBSCRIBE is answered immediately from current state, without
    waiting for the next cycle: one batched message for the wildcard
    topic, otherwise one bare SpreadRecord message per ready pair.
    """

    def __init__(
        self,
        store: PriceStore,
        calculator: SpreadCalculator,
        pair_names: List[str],
        host: str = LISTEN_HOST,
        port: int = LISTEN_PORT,
    ) -> None:
        self.store = store
        self.calculator = calculator
        self.pair_names = list(pair_names)
        self.host = host
        self.port = port

        self.clients: Dict[Any, Subscriber] = {}
        self._server: Any = None

    @property
    def client_count(self) -> int:
        return len(self.clients)

    async def start(self) -> None:
        """
        Open the listening socket.

        ## Raises
        - `OSError`: if the socket cannot be bound
        """
        self._server = await websockets.serve(self._handler, self.host, self.port)
        logger.info(f"WebSocket server running on ws://{self.host}:{self.port}")

    @property
    def bound_port(self) -> Optional[int]:
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def _handler(self, websocket: Any) -> None:
        self.on_connect(websocket)
        try:
            async for message in websocket:
                await self.on_message(websocket, message)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self.on_disconnect(websocket)

    def on_connect(self, websocket: Any) -> Subscriber:
        subscriber = Subscriber(websocket)
        self.clients[websocket] = subscriber
        logger.info(f"Client connected. Active: {len(self.clients)}")
        return subscriber

    def on_disconnect(self, websocket: Any) -> None:
        if self.clients.pop(websocket, None) is not None:
            logger.info(f"Client disconnected. Active: {len(self.clients)}")

    async def on_message(self, websocket: Any, message: Any) -> None:
        subscriber = self.clients.get(websocket)
        if subscriber is None:
            return

        try:
            request = SubscribeRequest.model_validate_json(message)
        except ValidationError as e:
            logger.warning(f"Error parsing client message: {e.errors()[0]['msg']}")
            return

        if request.method != METHOD_SUBSCRIBE:
            logger.debug(f"Ignoring client method: {request.method}")
            return

        topics = [topic for topic in map(Topic.parse, request.params) if topic]
        if not topics:
            logger.debug(f"No valid topics in subscription: {request.params}")
            return

        subscriber.topics.update(topics)
        logger.info(
            f"Client subscribed to {sorted(str(t.pair or 'all') for t in topics)}"
        )

        await self._send_initial_snapshot(subscriber, topics)

    async def _send_initial_snapshot(
        self, subscriber: Subscriber, topics: List[Topic]
    ) -> None:
        if any(topic.is_all for topic in topics):
            records = self.calculator.snapshot(self.store, self.pair_names)
            await self._send(subscriber.websocket, encode_batch(records))
            return

        for topic in topics:
            record = self.snapshot_pair(topic.pair)
            if record is not None:
                await self._send(subscriber.websocket, json.dumps(record.to_wire()))

    def snapshot_pair(self, pair: str) -> Optional[SpreadRecord]:
        """One-off record for a single pair from current state, or None if not ready."""
        return self.calculator.for_pair(self.store, pair)

    def snapshot(self) -> List[SpreadRecord]:
        return self.calculator.snapshot(self.store, self.pair_names)

    async def broadcast_cycle(self) -> int:
        """
        Send each subscribed client its share of the current snapshot.

        Records are computed before the first send, so every client sees
        the same snapshot. Frames are queued with `websockets.broadcast`,
        which never waits on a client's socket: a subscriber that stops
        reading cannot hold up the feeds that trigger this cycle.

        ## Returns
        - Number of clients a message was queued for
        """
        records = self.snapshot()
        if not records:
            return 0

        # Encoded subset -> connections that receive exactly that subset
        batches: Dict[str, List[Any]] = {}
        for subscriber in list(self.clients.values()):
            if not subscriber.is_active or not self._is_open(subscriber.websocket):
                continue
            selected = subscriber.select(records)
            if not selected:
                continue
            batches.setdefault(encode_batch(selected), []).append(subscriber.websocket)

        for message, connections in batches.items():
            websockets.broadcast(connections, message)

        return sum(len(connections) for connections in batches.values())

    @staticmethod
    def _is_open(websocket: Any) -> bool:
        return websocket.state is State.OPEN

    async def _send(self, websocket: Any, message: str) -> bool:
        if not self._is_open(websocket):
            return False
        try:
            await websocket.send(message)
            return True
        except websockets.exceptions.ConnectionClosed:
            return False

    async def close(self) -> None:
        """Close every client connection and stop accepting new ones."""
        clients = list(self.clients)
        if clients:
            await asyncio.gather(
                *[client.close() for client in clients], return_exceptions=True
            )
        self.clients.clear()

        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("WebSocket server closed")
