"""
Price oracle interfaces.

A PriceOracle maps an asset to a USD PriceQuote; a PriceFeed is one
external round-data source a registry oracle can be wired to.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..core.models import Asset, PriceQuote


@dataclass(frozen=True)
class FeedRound:
    """
    Latest round reported by an external price feed.

    Attributes:
        answer: Price scaled by 10**decimals (may be <= 0 on a broken feed)
        updated_at: Unix timestamp (seconds) of the round
        decimals: Decimals of `answer`
    """

    answer: int
    updated_at: int
    decimals: int = 8


@runtime_checkable
class PriceFeed(Protocol):
    """External source of USD rounds for a single asset."""

    async def latest_round_data(self) -> FeedRound: ...


@runtime_checkable
class PriceOracle(Protocol):
    """
    USD valuation of assets.

    Implementations raise FeedNotConfiguredError for unknown assets and
    PriceUnavailableError when a price exists but cannot be trusted.
    """

    async def get_price(self, asset: Asset) -> PriceQuote: ...
