"""
Price oracle module.

Provides the PriceOracle / PriceFeed interfaces, an owner-managed feed
registry and static price sources.
"""

from .base import FeedRound, PriceFeed, PriceOracle
from .feed_registry import FeedRegistryOracle, normalize_price
from .static import StaticPriceFeed, StaticPriceOracle

__all__ = [
    "FeedRound",
    "PriceFeed",
    "PriceOracle",
    "FeedRegistryOracle",
    "normalize_price",
    "StaticPriceFeed",
    "StaticPriceOracle",
]
