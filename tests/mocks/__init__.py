# Mock classes for testing
"""Mock market data, routers and oracles for testing."""

from .market import (
    AVAX,
    BASKET,
    BTCB,
    DEFAULT_PRICES,
    ONE_AVAX,
    USDC,
    USDT,
    WETH,
    build_oracle,
    usd,
)
from .router_mock import FailingSwapRouter, SlowPriceOracle

__all__ = [
    "AVAX",
    "BTCB",
    "WETH",
    "USDC",
    "USDT",
    "BASKET",
    "ONE_AVAX",
    "DEFAULT_PRICES",
    "build_oracle",
    "usd",
    "FailingSwapRouter",
    "SlowPriceOracle",
]
