"""
Engine Configuration Model.

Limits applied by the fund engine to oracle quotes, swaps and rebalancing.
"""

from pydantic import Field

from .base import BaseConfig


class EngineConfig(BaseConfig):
    """
    Fund engine configuration.

    Example:
        >>> config = EngineConfig(max_slippage_bps=100, rebalance_tolerance_bps=25)
    """

    max_price_age_seconds: int = Field(
        default=3600,
        ge=1,
        description="Quotes older than this are treated as unavailable",
    )
    max_slippage_bps: int = Field(
        default=300,
        ge=0,
        le=10_000,
        description="Minimum swap output is the oracle expectation minus this many bps",
    )
    rebalance_tolerance_bps: int = Field(
        default=50,
        ge=0,
        le=10_000,
        description="Per-asset deviation from target, in bps of NAV, left untouched by rebalance",
    )
    call_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for each oracle or router call",
    )
    rebalance_on_set_proportions: bool = Field(
        default=False,
        description="Run a rebalance right after a successful proportion change",
    )
    history_size: int = Field(
        default=100,
        ge=1,
        description="Transactions kept in each fund's in-memory history",
    )

    @property
    def slippage_factor_bps(self) -> int:
        """Share of the expected output required as minimum, in bps."""
        return 10_000 - self.max_slippage_bps
