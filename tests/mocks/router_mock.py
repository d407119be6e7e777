"""
Mock swap router and oracle wrappers for failure testing.
"""

import asyncio
from typing import List, Optional, Set, Tuple

from index_fund.core.exceptions import InsufficientLiquidityError
from index_fund.core.models import Asset, PriceQuote


class FailingSwapRouter:
    """
    Router wrapper that fails selected swaps.

    Example:
        >>> router = FailingSwapRouter(SimulatedSwapRouter(oracle))
        >>> router.fail_call(3)          # third swap raises
        >>> router.fail_pair(AVAX, USDT)  # every AVAX -> USDT swap raises
    """

    def __init__(self, inner):
        self._inner = inner
        self._fail_pairs: Set[Tuple[Asset, Asset]] = set()
        self._fail_calls: Set[int] = set()
        self.delay: float = 0.0
        self.calls: List[Tuple[Asset, Asset, int, int]] = []

    def fail_pair(self, asset_in: Asset, asset_out: Asset) -> None:
        self._fail_pairs.add((asset_in, asset_out))

    def fail_call(self, number: int) -> None:
        """Fail the n-th swap (1-based) counted from construction."""
        self._fail_calls.add(number)

    def heal(self) -> None:
        self._fail_pairs.clear()
        self._fail_calls.clear()
        self.delay = 0.0

    async def swap_exact_in(
        self,
        asset_in: Asset,
        asset_out: Asset,
        amount_in: int,
        min_amount_out: int,
    ) -> int:
        self.calls.append((asset_in, asset_out, amount_in, min_amount_out))
        number = len(self.calls)

        if self.delay:
            await asyncio.sleep(self.delay)

        if (asset_in, asset_out) in self._fail_pairs or number in self._fail_calls:
            raise InsufficientLiquidityError(
                "Pool drained",
                asset_in=str(asset_in),
                asset_out=str(asset_out),
            )
        return await self._inner.swap_exact_in(asset_in, asset_out, amount_in, min_amount_out)


class SlowPriceOracle:
    """Oracle wrapper that answers after a delay."""

    def __init__(self, inner, delay: float = 1.0, slow_assets: Optional[Set[Asset]] = None):
        self._inner = inner
        self.delay = delay
        self._slow_assets = slow_assets

    async def get_price(self, asset: Asset) -> PriceQuote:
        if self._slow_assets is None or asset in self._slow_assets:
            await asyncio.sleep(self.delay)
        return await self._inner.get_price(asset)
