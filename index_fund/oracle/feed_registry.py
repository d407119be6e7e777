"""
Feed registry oracle.

Owner-managed mapping of assets to external price feeds. Each feed's
answer is rescaled to PRICE_DECIMALS before being returned as a quote.
"""

from typing import Dict, Optional

from ..core.exceptions import (
    FeedNotConfiguredError,
    PriceUnavailableError,
    UnauthorizedError,
)
from ..core.logger import get_logger
from ..core.models import PRICE_DECIMALS, Asset, PriceQuote
from ..core.structured_logging import get_audit_logger
from .base import PriceFeed

logger = get_logger(__name__)


def normalize_price(answer: int, decimals: int) -> int:
    """
    Rescale a feed answer to PRICE_DECIMALS.

    Extra precision is truncated.

    Example:
        >>> normalize_price(3_500_000_000_000_000_000_000, 18)
        350000000000
    """
    if decimals == PRICE_DECIMALS:
        return answer
    if decimals < PRICE_DECIMALS:
        return answer * 10 ** (PRICE_DECIMALS - decimals)
    return answer // 10 ** (decimals - PRICE_DECIMALS)


class FeedRegistryOracle:
    """
    Oracle backed by a registry of per-asset price feeds.

    Only the owner may register or remove feeds.

    Example:
        >>> oracle = FeedRegistryOracle(owner="deployer")
        >>> oracle.set_price_feed("deployer", Asset.native(), avax_usd_feed)
        >>> quote = await oracle.get_price(Asset.native())
    """

    def __init__(self, owner: str):
        self._owner = owner
        self._feeds: Dict[Asset, PriceFeed] = {}
        self._audit = get_audit_logger("oracle")

    @property
    def owner(self) -> str:
        """Account allowed to manage feeds."""
        return self._owner

    def _require_owner(self, caller: str, action: str) -> None:
        if caller != self._owner:
            self._audit.access_denied(caller=caller, action=action)
            raise UnauthorizedError(
                f"Only the oracle owner may {action}",
                caller=caller,
            )

    def set_price_feed(self, caller: str, asset: Asset, feed: PriceFeed) -> None:
        """
        Register or replace the feed for an asset.

        Args:
            caller: Account performing the change
            asset: Asset to price
            feed: Feed returning USD rounds for the asset

        Raises:
            UnauthorizedError: If caller is not the owner
        """
        self._require_owner(caller, "set_price_feed")
        replaced = asset in self._feeds
        self._feeds[asset] = feed
        self._audit.config_changed(
            config_key=f"price_feed.{asset.address}",
            old_value="replaced" if replaced else None,
            new_value=type(feed).__name__,
            changed_by=caller,
        )
        logger.info(f"Price feed {'replaced' if replaced else 'set'} for {asset}")

    def remove_price_feed(self, caller: str, asset: Asset) -> None:
        """Unregister the feed for an asset."""
        self._require_owner(caller, "remove_price_feed")
        if asset not in self._feeds:
            raise FeedNotConfiguredError(
                f"No price feed configured for {asset}",
                details={"asset": asset.address},
            )
        del self._feeds[asset]
        self._audit.config_changed(
            config_key=f"price_feed.{asset.address}",
            old_value="set",
            new_value=None,
            changed_by=caller,
        )
        logger.info(f"Price feed removed for {asset}")

    def has_feed(self, asset: Asset) -> bool:
        """Check if a feed is registered for the asset."""
        return asset in self._feeds

    def get_feed(self, asset: Asset) -> Optional[PriceFeed]:
        """Registered feed for the asset, if any."""
        return self._feeds.get(asset)

    async def get_price(self, asset: Asset) -> PriceQuote:
        """
        Latest USD price of an asset.

        Raises:
            FeedNotConfiguredError: If no feed is registered
            PriceUnavailableError: If the feed answer is not positive
        """
        feed = self._feeds.get(asset)
        if feed is None:
            raise FeedNotConfiguredError(
                f"No price feed configured for {asset}",
                details={"asset": asset.address},
            )

        round_data = await feed.latest_round_data()
        if round_data.answer <= 0:
            raise PriceUnavailableError(
                f"Invalid price for {asset}: {round_data.answer}",
                details={"asset": asset.address, "answer": round_data.answer},
            )

        price = normalize_price(round_data.answer, round_data.decimals)
        if price <= 0:
            raise PriceUnavailableError(
                f"Price for {asset} rounds to zero at {PRICE_DECIMALS} decimals",
                details={"asset": asset.address, "answer": round_data.answer},
            )

        return PriceQuote(asset=asset, price=price, timestamp=round_data.updated_at)
