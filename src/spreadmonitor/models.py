import json
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

TOPIC_PREFIX = "difference"
TOPIC_ALL = "all"


class PairConfig(BaseModel):
    """A trading pair tracked on both venues. Identity is `name`."""

    name: str
    onchain_market_address: str
    onchain_program_address: str
    exchange_symbol: str
    model_config = ConfigDict(frozen=True)

    @property
    def stream_name(self) -> str:
        return f"{self.exchange_symbol.lower()}@ticker"


class SpreadRecord(BaseModel):
    exchange_price: float = Field(..., alias="binancePrice")
    onchain_price: float = Field(..., alias="serumPrice")
    price_difference: float = Field(..., alias="priceDifference")
    percent_difference: str = Field(..., alias="percentDifference")
    pair: str
    timestamp: str
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)

    def __str__(self):
        return json.dumps(self.to_wire(), indent=2, ensure_ascii=False)


class Topic(BaseModel):
    """
    Parsed subscription topic.

    `pair is None` is the wildcard topic ("difference.all"); otherwise the
    topic matches exactly one pair by name.
    """

    pair: Optional[str] = None
    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, raw: object) -> Optional["Topic"]:
        if not isinstance(raw, str):
            return None
        kind, _, target = raw.partition(".")
        if kind != TOPIC_PREFIX or not target:
            return None
        if target == TOPIC_ALL:
            return cls()
        return cls(pair=target)

    @property
    def is_all(self) -> bool:
        return self.pair is None

    def matches(self, pair_name: str) -> bool:
        return self.is_all or self.pair == pair_name


class SubscribeRequest(BaseModel):
    method: str
    params: list = Field(default_factory=list)


class TickerData(BaseModel):
    symbol: str = Field(..., alias="s")
    last_price: float = Field(..., alias="c")
    model_config = ConfigDict(populate_by_name=True)


class TickerStreamMessage(BaseModel):
    stream: str
    data: TickerData

    @property
    def base_stream(self) -> str:
        return self.stream.split("@", 1)[0].lower()
