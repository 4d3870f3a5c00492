"""
Configuration constants for the Spread Monitor.
"""

import logging
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from spreadmonitor.models import PairConfig

logger = logging.getLogger(__name__)

# On-chain order book program shared by all tracked markets
ONCHAIN_PROGRAM_ADDRESS = "EUqojwWA2rd19FZrzeBncJsm38Jm1hEhE3zsmX3bRc2o"

TRADING_PAIRS: List[PairConfig] = [
    PairConfig(
        name="BTC/USDC",
        onchain_market_address="CVfYa8RGXnuDBeGmniCcdkBwoLqVxh92xB1JqgRQx3F",
        onchain_program_address=ONCHAIN_PROGRAM_ADDRESS,
        exchange_symbol="BTCUSDC",
    ),
    PairConfig(
        name="ETH/USDC",
        onchain_market_address="H5uzEytiByuXt964KampmuNCurNDwkVVypkym75J2DQW",
        onchain_program_address=ONCHAIN_PROGRAM_ADDRESS,
        exchange_symbol="ETHUSDC",
    ),
    PairConfig(
        name="SOL/USDC",
        onchain_market_address="7xMDbYTCqQEcK2aM9LbetGtNFJpzKdfXzLL5juaLh4GJ",
        onchain_program_address=ONCHAIN_PROGRAM_ADDRESS,
        exchange_symbol="SOLUSDC",
    ),
]

# Fee rates applied to each venue's price before comparing
EXCHANGE_FEE_RATE = 0.001
ONCHAIN_FEE_RATE = 0.003

# Advisory only: published for downstream consumers, never enforced here
PROFITABILITY_THRESHOLD = 0.005

# Timing
POLL_INTERVAL_SECONDS = 1.0
RECONNECT_DELAY_SECONDS = 5.0
STARTUP_RETRY_DELAY_SECONDS = 5.0

# Client-facing socket
LISTEN_HOST = "0.0.0.0"
LISTEN_PORT = 3001

# Upstream endpoints
EXCHANGE_STREAM_BASE_URL = "wss://stream.binance.com:9443/stream"
ORDERBOOK_API_URL = "http://localhost:8080/api"
ORDERBOOK_DEPTH = 1
HTTP_TIMEOUT_SECONDS = 10.0


def build_stream_url(
    pairs: List[PairConfig], base_url: str = EXCHANGE_STREAM_BASE_URL
) -> str:
    """
    Build the combined ticker stream URL for all configured pairs.

    ## Example
    `wss://stream.binance.com:9443/stream?streams=btcusdc@ticker/ethusdc@ticker`
    """
    streams = "/".join(pair.stream_name for pair in pairs)
    return f"{base_url}?streams={streams}"


class MonitorSettings(BaseSettings):
    """
    Runtime settings: compiled-in defaults, overridable from the environment.

    Scalars are read from the variable named in `validation_alias`; fields
    without one use the `MONITOR_` prefix (`MONITOR_HTTP_TIMEOUT`,
    `MONITOR_PAIRS` as a JSON list). Empty values are ignored.
    """

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    pairs: List[PairConfig] = Field(default_factory=lambda: list(TRADING_PAIRS))
    host: str = Field(LISTEN_HOST, validation_alias="MONITOR_HOST")
    port: int = Field(LISTEN_PORT, ge=0, le=65535, validation_alias="MONITOR_PORT")
    exchange_fee_rate: float = Field(
        EXCHANGE_FEE_RATE, ge=0, lt=1, validation_alias="EXCHANGE_FEE_RATE"
    )
    onchain_fee_rate: float = Field(
        ONCHAIN_FEE_RATE, ge=0, lt=1, validation_alias="ONCHAIN_FEE_RATE"
    )
    profitability_threshold: float = Field(
        PROFITABILITY_THRESHOLD, validation_alias="PROFITABILITY_THRESHOLD"
    )
    poll_interval: float = Field(
        POLL_INTERVAL_SECONDS, gt=0, validation_alias="POLL_INTERVAL_SECONDS"
    )
    reconnect_delay: float = Field(
        RECONNECT_DELAY_SECONDS, gt=0, validation_alias="RECONNECT_DELAY_SECONDS"
    )
    startup_retry_delay: float = Field(STARTUP_RETRY_DELAY_SECONDS, gt=0)
    exchange_stream_url: Optional[str] = Field(None, validation_alias="EXCHANGE_STREAM_URL")
    orderbook_api_url: str = Field(ORDERBOOK_API_URL, validation_alias="ORDERBOOK_API_URL")
    orderbook_depth: int = Field(ORDERBOOK_DEPTH, ge=1)
    http_timeout: float = Field(HTTP_TIMEOUT_SECONDS, gt=0)
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    @property
    def stream_url(self) -> str:
        if self.exchange_stream_url:
            return self.exchange_stream_url
        return build_stream_url(self.pairs)


def load_settings() -> MonitorSettings:
    """
    Build settings from compiled-in defaults and environment overrides.

    ## Raises
    - `pydantic.ValidationError`: if an override has an invalid value
    """
    settings = MonitorSettings()
    logger.debug(f"Loaded settings: {settings.model_dump(exclude={'pairs'})}")
    return settings
