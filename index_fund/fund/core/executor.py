"""
Swap Executor.

Runs swap legs through the router with a slippage guard and a timeout,
records every leg on its transaction, and provides the best-effort reverse
swaps used to compensate rolled back operations.
"""

import asyncio
import math
from fractions import Fraction
from typing import Dict, Optional

from ...config.models import EngineConfig
from ...core.exceptions import IndexFundError, SwapTimeoutError
from ...core.logger import get_logger
from ...core.models import BPS_DENOMINATOR, Asset, PriceQuote
from ...core.structured_logging import FundActivityLogger, get_activity_logger
from ...router.base import SwapRouter
from ..models.records import FundTransaction, SwapLeg

logger = get_logger(__name__)


class SwapExecutor:
    """
    Executes swap legs for the fund engine.

    Example:
        >>> executor = SwapExecutor(router, EngineConfig())
        >>> leg = await executor.execute_leg(tx, avax, wbtc, 10**18, quotes)
        >>> leg.amount_out
    """

    def __init__(
        self,
        router: SwapRouter,
        config: EngineConfig,
        activity: Optional[FundActivityLogger] = None,
    ):
        self._router = router
        self._config = config
        self._activity = activity or get_activity_logger("engine")

    def min_amount_out(self, expected: Fraction) -> int:
        """Lowest acceptable output for an expected output."""
        return math.floor(
            expected * self._config.slippage_factor_bps / BPS_DENOMINATOR
        )

    @staticmethod
    def expected_out(
        quotes: Dict[Asset, PriceQuote],
        asset_in: Asset,
        asset_out: Asset,
        amount_in: int,
    ) -> Fraction:
        """Output implied by oracle prices, before venue costs."""
        value = quotes[asset_in].value_of(amount_in)
        return quotes[asset_out].amount_for(value)

    async def swap(
        self,
        asset_in: Asset,
        asset_out: Asset,
        amount_in: int,
        min_amount_out: int,
    ) -> int:
        """
        Call the router with the configured timeout.

        Raises:
            SwapTimeoutError: If the router does not answer in time
            SwapError: As raised by the router
        """
        timeout = self._config.call_timeout_seconds
        try:
            return await asyncio.wait_for(
                self._router.swap_exact_in(asset_in, asset_out, amount_in, min_amount_out),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise SwapTimeoutError(
                f"Router timed out after {timeout}s",
                asset_in=str(asset_in),
                asset_out=str(asset_out),
                details={"amount_in": amount_in},
            ) from e

    async def execute_leg(
        self,
        tx: FundTransaction,
        asset_in: Asset,
        asset_out: Asset,
        amount_in: int,
        quotes: Dict[Asset, PriceQuote],
    ) -> SwapLeg:
        """
        Execute one guarded swap and record it on the transaction.

        The failed leg is recorded before the error is re-raised.

        Returns:
            The successful leg
        """
        expected = self.expected_out(quotes, asset_in, asset_out, amount_in)
        leg = SwapLeg(
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=amount_in,
            min_amount_out=self.min_amount_out(expected),
        )
        tx.add_leg(leg)

        try:
            leg.amount_out = await self.swap(asset_in, asset_out, amount_in, leg.min_amount_out)
        except IndexFundError as e:
            leg.error_message = str(e)
            self._activity.swap_failed(
                str(asset_in),
                str(asset_out),
                amount_in,
                str(e),
                transaction_id=tx.transaction_id,
                fund_id=tx.fund_id,
            )
            logger.warning(
                f"Transaction {tx.transaction_id[:8]} swap {asset_in}->{asset_out} failed: {e}"
            )
            raise

        self._activity.swap_executed(
            str(asset_in),
            str(asset_out),
            amount_in,
            leg.amount_out,
            transaction_id=tx.transaction_id,
            fund_id=tx.fund_id,
        )
        return leg

    async def unwind(
        self,
        tx: FundTransaction,
        asset_in: Asset,
        asset_out: Asset,
        amount_in: int,
    ) -> Optional[int]:
        """
        Reverse swap used for compensation.

        Accepts any output. Returns the amount received, or None when the
        reverse swap fails; the caller then keeps the asset in kind.
        """
        leg = SwapLeg(
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=amount_in,
            compensation=True,
        )
        tx.add_leg(leg)

        try:
            leg.amount_out = await self.swap(asset_in, asset_out, amount_in, 0)
        except IndexFundError as e:
            leg.error_message = str(e)
            self._activity.swap_compensated(
                str(asset_in),
                str(asset_out),
                amount_in,
                None,
                transaction_id=tx.transaction_id,
                fund_id=tx.fund_id,
            )
            logger.error(
                f"Transaction {tx.transaction_id[:8]} could not unwind "
                f"{amount_in} {asset_in}->{asset_out}: {e}"
            )
            return None

        self._activity.swap_compensated(
            str(asset_in),
            str(asset_out),
            amount_in,
            leg.amount_out,
            transaction_id=tx.transaction_id,
            fund_id=tx.fund_id,
        )
        logger.info(
            f"Transaction {tx.transaction_id[:8]} unwound "
            f"{amount_in} {asset_in} -> {leg.amount_out} {asset_out}"
        )
        return leg.amount_out
