"""
Shared test fixtures for spreadmonitor tests.

Provides reusable fakes for:
- Client-facing WebSocket connections
- The exchange ticker stream
- On-chain order book markets and their loader
"""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from websockets.protocol import State

from spreadmonitor.models import PairConfig
from spreadmonitor.monitor.spread import SpreadCalculator
from spreadmonitor.monitor.state import PriceStore

PROGRAM = "EUqojwWA2rd19FZrzeBncJsm38Jm1hEhE3zsmX3bRc2o"


# ---------------------------------------------------------------------------
# Pairs and state
# ---------------------------------------------------------------------------


@pytest.fixture
def pairs():
    return [
        PairConfig(
            name="BTC/USDC",
            onchain_market_address="btc-market",
            onchain_program_address=PROGRAM,
            exchange_symbol="BTCUSDC",
        ),
        PairConfig(
            name="ETH/USDC",
            onchain_market_address="eth-market",
            onchain_program_address=PROGRAM,
            exchange_symbol="ETHUSDC",
        ),
        PairConfig(
            name="SOL/USDC",
            onchain_market_address="sol-market",
            onchain_program_address=PROGRAM,
            exchange_symbol="SOLUSDC",
        ),
    ]


@pytest.fixture
def pair_names(pairs):
    return [pair.name for pair in pairs]


@pytest.fixture
def store():
    return PriceStore()


@pytest.fixture
def calculator():
    return SpreadCalculator(exchange_fee_rate=0.001, onchain_fee_rate=0.003)


# ---------------------------------------------------------------------------
# Client connections
# ---------------------------------------------------------------------------


class FakeClient:
    """
    Stand-in for a server-side WebSocket connection.

    Exposes what both `send()` and `websockets.broadcast()` touch. Text
    frames written by either path are collected in `outbox`.
    """

    def __init__(self, state=State.OPEN):
        self.outbox = []
        self.protocol = MagicMock()
        self.protocol.state = state
        self.protocol.send_text = MagicMock(
            side_effect=lambda data: self.outbox.append(data.decode())
        )
        self.send_in_progress = None
        self.fragmented_send_waiter = None
        self.send_data = MagicMock()
        self.logger = MagicMock()
        self.send = AsyncMock(side_effect=self.outbox.append)
        self.close = AsyncMock()

    @property
    def state(self):
        return self.protocol.state

    @state.setter
    def state(self, value):
        self.protocol.state = value

    def sent_messages(self):
        return [json.loads(message) for message in self.outbox]

    def reset(self):
        self.outbox.clear()
        self.send.reset_mock()
        self.protocol.send_text.reset_mock()


@pytest.fixture
def make_client():
    return FakeClient


# ---------------------------------------------------------------------------
# Exchange stream
# ---------------------------------------------------------------------------


def ticker_message(symbol: str, price: str) -> str:
    return json.dumps(
        {"stream": f"{symbol.lower()}@ticker", "data": {"s": symbol, "c": price}}
    )


class FakeStreamConnection:
    """Async-iterable exchange connection that yields queued messages then ends."""

    def __init__(self, messages=(), error=None):
        self.messages = list(messages)
        self.error = error
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed = True


# ---------------------------------------------------------------------------
# On-chain order books
# ---------------------------------------------------------------------------


class FakeMarket:
    def __init__(self, bids=None, asks=None, error=None, gate=None):
        self.bids = bids if bids is not None else []
        self.asks = asks if asks is not None else []
        self.error = error
        self.gate = gate
        self.calls = 0

    async def load_bids(self, depth=1):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.bids[:depth]

    async def load_asks(self, depth=1):
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.asks[:depth]


class FakeLoader:
    def __init__(self, markets=None, failing=()):
        self.markets = markets or {}
        self.failing = set(failing)
        self.aclose = AsyncMock()

    async def load_market(self, market_address, program_address):
        if market_address in self.failing:
            raise ConnectionError(f"cannot load {market_address}")
        return self.markets[market_address]


@pytest.fixture
def gate():
    return asyncio.Event()
