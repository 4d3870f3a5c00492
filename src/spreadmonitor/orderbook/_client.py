"""
# HTTP Order Book Client

Reads top-of-book levels for on-chain order book markets from an
order-book API service.

## Endpoints
- `GET {base}/markets/{address}` returns market metadata:
  ```json
  {"address": "CVfY...", "programId": "EUqo...", "name": "BTC/USDC"}
  ```
- `GET {base}/orderbooks/{address}?side=bids&depth=1` returns levels:
  ```json
  {"levels": [[49890.5, 0.25], [49890.0, 1.1]]}
  ```

## Usage
```python
client = HttpOrderBookClient("http://localhost:8080/api")
market = await client.load_market(market_address, program_address)
bids = await market.load_bids()
await client.aclose()
```
"""

import logging
from typing import Any, List, Optional

import httpx

from .base import MarketLoadError, PriceLevel

logger = logging.getLogger(__name__)


def _parse_levels(payload: Any) -> List[PriceLevel]:
    """
    Convert `{"levels": [[price, size], ...]}` into (price, size) tuples.

    ## Raises
    - `ValueError`: if the payload does not have the expected shape
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("levels"), list):
        raise ValueError(f"Unexpected order book payload: {str(payload)[:100]}")

    levels = []
    for level in payload["levels"]:
        price, size = level[0], level[1]
        levels.append((float(price), float(size)))
    return levels


class HttpOrderBookMarket:
    """Order book handle for one resolved market."""

    def __init__(self, client: httpx.AsyncClient, address: str, name: str = "") -> None:
        self._client = client
        self.address = address
        self.name = name

    async def load_bids(self, depth: int = 1) -> List[PriceLevel]:
        return await self._load_side("bids", depth)

    async def load_asks(self, depth: int = 1) -> List[PriceLevel]:
        return await self._load_side("asks", depth)

    async def _load_side(self, side: str, depth: int) -> List[PriceLevel]:
        response = await self._client.get(
            f"/orderbooks/{self.address}", params={"side": side, "depth": depth}
        )
        response.raise_for_status()
        return _parse_levels(response.json())


class HttpOrderBookClient:
    """
    Market loader backed by `httpx.AsyncClient`.

    ## Args
    - `base_url`: Order-book API root
    - `timeout`: Per-request timeout in seconds
    - `transport`: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def load_market(
        self, market_address: str, program_address: str
    ) -> HttpOrderBookMarket:
        """
        Resolve a market address into an order book handle.

        ## Raises
        - `httpx.HTTPError`: request failed or returned an error status
        - `MarketLoadError`: market is owned by a different program
        """
        response = await self._client.get(f"/markets/{market_address}")
        response.raise_for_status()
        metadata = response.json()
        if not isinstance(metadata, dict):
            raise MarketLoadError(f"Unexpected metadata for market {market_address}")

        owner = metadata.get("programId")
        if owner != program_address:
            raise MarketLoadError(
                f"Market {market_address} belongs to program {owner}, "
                f"expected {program_address}"
            )

        logger.debug(f"Resolved market {market_address} ({metadata.get('name', '')})")
        return HttpOrderBookMarket(
            self._client, market_address, name=metadata.get("name", "")
        )

    async def aclose(self) -> None:
        await self._client.aclose()
