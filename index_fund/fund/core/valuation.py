"""
Valuation.

Fetches and checks oracle quotes and values fund holdings in USD. All
arithmetic is exact (Fraction); Decimal is used only for reporting.
"""

import asyncio
import time
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction
from typing import Callable, Dict, Iterable, Optional

from ...config.models import EngineConfig
from ...core.exceptions import PriceUnavailableError
from ...core.logger import get_logger
from ...core.models import PERCENT_TOTAL, PRICE_DECIMALS, Asset, PriceQuote
from ...oracle.base import PriceOracle
from .holdings import Holdings

logger = get_logger(__name__)

_USD_QUANTUM = Decimal(1).scaleb(-PRICE_DECIMALS)
_WEIGHT_QUANTUM = Decimal("0.0001")


def to_decimal(value: Fraction, quantum: Decimal = _USD_QUANTUM) -> Decimal:
    """Round an exact value to a Decimal with the given quantum."""
    return (Decimal(value.numerator) / Decimal(value.denominator)).quantize(quantum)


@dataclass
class Valuation:
    """
    USD valuation of a fund's holdings under one set of quotes.

    Attributes:
        quotes: Quote per asset, including assets the fund does not hold
        values: USD value per held asset
        nav: Sum of values
    """

    quotes: Dict[Asset, PriceQuote]
    values: Dict[Asset, Fraction] = field(default_factory=dict)
    nav: Fraction = Fraction(0)

    def value_of(self, asset: Asset) -> Fraction:
        return self.values.get(asset, Fraction(0))

    def weight_of(self, asset: Asset) -> Fraction:
        """Share of NAV held in asset, between 0 and 1."""
        if self.nav == 0:
            return Fraction(0)
        return self.value_of(asset) / self.nav

    def weights(self) -> Dict[str, Decimal]:
        """Asset address -> weight in percentage points."""
        return {
            asset.address: to_decimal(self.weight_of(asset) * PERCENT_TOTAL, _WEIGHT_QUANTUM)
            for asset in self.values
        }

    @property
    def nav_usd(self) -> Decimal:
        return to_decimal(self.nav)


class Valuator:
    """
    Oracle access for the engine.

    Every quote is bounded by the call timeout and rejected when its price
    is zero or older than max_price_age_seconds.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        config: EngineConfig,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._oracle = oracle
        self._config = config
        self._clock = clock or time.time

    async def quote(self, asset: Asset) -> PriceQuote:
        """
        Fetch a trusted quote.

        Raises:
            FeedNotConfiguredError: If the oracle has no feed for asset
            PriceUnavailableError: On timeout, zero price, or a stale quote
        """
        timeout = self._config.call_timeout_seconds
        try:
            quote = await asyncio.wait_for(self._oracle.get_price(asset), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise PriceUnavailableError(
                f"Oracle timed out after {timeout}s for {asset}",
                details={"asset": asset.address},
            ) from e

        if quote.price <= 0:
            raise PriceUnavailableError(
                f"Zero price for {asset}",
                details={"asset": asset.address, "price": quote.price},
            )

        age = quote.age(self._clock())
        if age > self._config.max_price_age_seconds:
            raise PriceUnavailableError(
                f"Stale price for {asset}: {int(age)}s old",
                details={
                    "asset": asset.address,
                    "age": int(age),
                    "max_age": self._config.max_price_age_seconds,
                },
            )
        return quote.for_asset(asset)

    async def quote_all(self, assets: Iterable[Asset]) -> Dict[Asset, PriceQuote]:
        """Quote each distinct asset once, in order."""
        quotes: Dict[Asset, PriceQuote] = {}
        for asset in assets:
            if asset not in quotes:
                quotes[asset] = await self.quote(asset)
        return quotes

    async def value(self, holdings: Holdings, extra_assets: Iterable[Asset] = ()) -> Valuation:
        """Quote the held assets plus `extra_assets` and value the holdings."""
        quotes = await self.quote_all([*extra_assets, *holdings.assets])
        return self.revalue(quotes, holdings)

    @staticmethod
    def revalue(quotes: Dict[Asset, PriceQuote], holdings: Holdings) -> Valuation:
        """Value holdings with already fetched quotes."""
        values = {
            asset: quotes[asset].value_of(amount)
            for asset, amount in holdings.items()
        }
        return Valuation(quotes=quotes, values=values, nav=sum(values.values(), Fraction(0)))
