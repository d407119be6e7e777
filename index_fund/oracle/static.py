"""
Static price sources.

Fixed prices for local runs and tests: an oracle with settable per-asset
prices and a feed with a settable round.
"""

import time
from typing import Dict, Optional

from ..core.exceptions import FeedNotConfiguredError
from ..core.logger import get_logger
from ..core.models import PRICE_DECIMALS, Asset, PriceQuote
from .base import FeedRound

logger = get_logger(__name__)


class StaticPriceOracle:
    """
    Oracle returning prices set by hand.

    Prices use PRICE_DECIMALS (1.00 USD == 100_000_000). A price of 0 is
    stored as-is so callers can exercise their zero-price handling.

    Example:
        >>> oracle = StaticPriceOracle()
        >>> oracle.set_token_price(wbtc, 65_000 * 10**8)
    """

    def __init__(self, prices: Optional[Dict[Asset, int]] = None):
        self._quotes: Dict[Asset, PriceQuote] = {}
        for asset, price in (prices or {}).items():
            self.set_token_price(asset, price)

    def set_token_price(
        self,
        asset: Asset,
        price: int,
        timestamp: Optional[int] = None,
    ) -> None:
        """
        Set the USD price of an asset.

        Args:
            asset: Asset to price
            price: Price scaled by 10**PRICE_DECIMALS
            timestamp: Update time, defaults to now
        """
        if price < 0:
            raise ValueError(f"Price must be >= 0, got {price}")
        ts = int(time.time()) if timestamp is None else timestamp
        self._quotes[asset] = PriceQuote(asset=asset, price=price, timestamp=ts)
        logger.debug(f"Static price for {asset} set to {price}")

    def clear_price(self, asset: Asset) -> None:
        """Forget the price of an asset."""
        self._quotes.pop(asset, None)

    async def get_price(self, asset: Asset) -> PriceQuote:
        quote = self._quotes.get(asset)
        if quote is None:
            raise FeedNotConfiguredError(
                f"No price set for {asset}",
                details={"asset": asset.address},
            )
        return quote.for_asset(asset)


class StaticPriceFeed:
    """Price feed with a settable latest round."""

    def __init__(
        self,
        answer: int,
        decimals: int = PRICE_DECIMALS,
        updated_at: Optional[int] = None,
    ):
        self.decimals = decimals
        self._round = FeedRound(
            answer=answer,
            updated_at=int(time.time()) if updated_at is None else updated_at,
            decimals=decimals,
        )

    def update(self, answer: int, updated_at: Optional[int] = None) -> None:
        """Publish a new round."""
        self._round = FeedRound(
            answer=answer,
            updated_at=int(time.time()) if updated_at is None else updated_at,
            decimals=self.decimals,
        )

    async def latest_round_data(self) -> FeedRound:
        return self._round
