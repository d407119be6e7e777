"""
Simulated swap venue.

Prices every swap from a PriceOracle, then takes a fee and an extra
slippage haircut. Optional per-asset reserves cap how much of an asset the
venue can pay out; individual routes can be disabled to simulate missing
pools.
"""

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, List, Optional, Set, Tuple

from ..core.exceptions import (
    InsufficientLiquidityError,
    SlippageExceededError,
    ZeroAmountError,
)
from ..core.logger import get_logger
from ..core.models import BPS_DENOMINATOR, Asset
from ..oracle.base import PriceOracle

logger = get_logger(__name__)


@dataclass(frozen=True)
class SwapFill:
    """One executed swap."""

    asset_in: Asset
    asset_out: Asset
    amount_in: int
    amount_out: int


class SimulatedSwapRouter:
    """
    Oracle-priced swap venue.

    amount_out = floor(value_in / price_out * (1 - fee - slippage))

    Example:
        >>> router = SimulatedSwapRouter(oracle, fee_bps=30)
        >>> out = await router.swap_exact_in(avax, wbtc, 10**18, 0)
    """

    def __init__(
        self,
        oracle: PriceOracle,
        fee_bps: int = 30,
        slippage_bps: int = 0,
        reserves: Optional[Dict[Asset, int]] = None,
    ):
        """
        Initialize the router.

        Args:
            oracle: Source of reference prices
            fee_bps: Venue fee in basis points
            slippage_bps: Additional price impact in basis points
            reserves: Payable liquidity per asset; None means unlimited
        """
        if fee_bps < 0 or slippage_bps < 0 or fee_bps + slippage_bps >= BPS_DENOMINATOR:
            raise ValueError(
                f"Invalid cost settings: fee_bps={fee_bps}, slippage_bps={slippage_bps}"
            )
        self._oracle = oracle
        self._fee_bps = fee_bps
        self._slippage_bps = slippage_bps
        self._reserves = dict(reserves) if reserves is not None else None
        self._disabled: Set[Tuple[Asset, Asset]] = set()
        self._fills: List[SwapFill] = []

    @property
    def fee_bps(self) -> int:
        return self._fee_bps

    @property
    def fills(self) -> List[SwapFill]:
        """Executed swaps, oldest first."""
        return list(self._fills)

    def set_slippage(self, slippage_bps: int) -> None:
        """Change the extra price impact applied to later swaps."""
        if slippage_bps < 0 or self._fee_bps + slippage_bps >= BPS_DENOMINATOR:
            raise ValueError(f"Invalid slippage_bps: {slippage_bps}")
        self._slippage_bps = slippage_bps

    def disable_route(self, asset_in: Asset, asset_out: Asset) -> None:
        """Make swaps from asset_in to asset_out fail with no liquidity."""
        self._disabled.add((asset_in, asset_out))

    def enable_route(self, asset_in: Asset, asset_out: Asset) -> None:
        self._disabled.discard((asset_in, asset_out))

    def reserve_of(self, asset: Asset) -> Optional[int]:
        """Remaining payable liquidity of an asset, None when unlimited."""
        if self._reserves is None:
            return None
        return self._reserves.get(asset, 0)

    async def quote_exact_in(self, asset_in: Asset, asset_out: Asset, amount_in: int) -> int:
        """Output the venue would pay for `amount_in`, ignoring reserves."""
        quote_in = (await self._oracle.get_price(asset_in)).for_asset(asset_in)
        quote_out = (await self._oracle.get_price(asset_out)).for_asset(asset_out)
        if quote_out.price <= 0:
            raise InsufficientLiquidityError(
                f"No price for {asset_out}",
                asset_in=str(asset_in),
                asset_out=str(asset_out),
            )
        gross = quote_out.amount_for(quote_in.value_of(amount_in))
        net = gross * Fraction(
            BPS_DENOMINATOR - self._fee_bps - self._slippage_bps, BPS_DENOMINATOR
        )
        return math.floor(net)

    async def swap_exact_in(
        self,
        asset_in: Asset,
        asset_out: Asset,
        amount_in: int,
        min_amount_out: int,
    ) -> int:
        """
        Swap an exact input amount.

        Raises:
            ZeroAmountError: If amount_in is not positive
            InsufficientLiquidityError: If the route is missing or reserves are short
            SlippageExceededError: If output is below min_amount_out
        """
        route = {"asset_in": str(asset_in), "asset_out": str(asset_out)}

        if amount_in <= 0:
            raise ZeroAmountError(f"Swap amount must be positive, got {amount_in}")

        if asset_in == asset_out or (asset_in, asset_out) in self._disabled:
            raise InsufficientLiquidityError("No route", **route)

        amount_out = await self.quote_exact_in(asset_in, asset_out, amount_in)

        if amount_out <= 0:
            raise InsufficientLiquidityError(
                f"Output for {amount_in} rounds to zero",
                details={"amount_in": amount_in},
                **route,
            )

        if self._reserves is not None:
            available = self._reserves.get(asset_out, 0)
            if amount_out > available:
                raise InsufficientLiquidityError(
                    f"Reserve too small: need {amount_out}, have {available}",
                    details={"amount_out": amount_out, "reserve": available},
                    **route,
                )

        if amount_out < min_amount_out:
            raise SlippageExceededError(
                f"Output {amount_out} below minimum {min_amount_out}",
                details={"amount_out": amount_out, "min_amount_out": min_amount_out},
                **route,
            )

        if self._reserves is not None:
            self._reserves[asset_out] -= amount_out
            self._reserves[asset_in] = self._reserves.get(asset_in, 0) + amount_in

        self._fills.append(SwapFill(asset_in, asset_out, amount_in, amount_out))
        logger.debug(f"Swapped {amount_in} {asset_in} -> {amount_out} {asset_out}")
        return amount_out
