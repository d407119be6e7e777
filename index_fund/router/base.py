"""
Swap router interface.
"""

from typing import Protocol, runtime_checkable

from ..core.models import Asset


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class SwapRouter(Protocol):
    """
    Venue converting an exact input amount of one asset into another.

    Implementations raise SlippageExceededError when the realized output is
    below `min_amount_out` and InsufficientLiquidityError when no route exists.
    """

    async def swap_exact_in(
        self,
        asset_in: Asset,
        asset_out: Asset,
        amount_in: int,
        min_amount_out: int,
    ) -> int: ...
