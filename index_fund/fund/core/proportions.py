"""
Proportion Table.

Ordered target weights of a fund, in integer percentage points summing to
100. The table also records the fund's introduced assets: the fixed
universe a fund can value and swap. Targets can only name those assets.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ...core.exceptions import InvalidProportionsError
from ...core.models import PERCENT_TOTAL, Asset


@dataclass(frozen=True)
class ProportionEntry:
    """Target weight of one asset."""

    asset: Asset
    weight: int


class ProportionTable:
    """
    Target weights of a fund.

    The table is replaced wholesale by set_proportions; a rejected update
    leaves the previous table in place. Assets absent from the table have a
    target of 0.

    Example:
        >>> table = ProportionTable.equal([wbtc, weth, usdc, usdt])
        >>> table.set_proportions([wbtc, weth, usdc, usdt], [40, 30, 20, 10])
        >>> table.weight_of(weth)
        30
    """

    def __init__(
        self,
        allowed_assets: Sequence[Asset],
        entries: Optional[Sequence[ProportionEntry]] = None,
    ):
        """
        Initialize the table.

        Args:
            allowed_assets: Assets the fund may target, in creation order
            entries: Initial targets; equal weights when omitted

        Raises:
            InvalidProportionsError: If the universe or the entries are invalid
        """
        allowed = list(allowed_assets)
        if not allowed:
            raise InvalidProportionsError("A fund needs at least one asset")
        if len(set(allowed)) != len(allowed):
            raise InvalidProportionsError(
                "Duplicate assets",
                details={"assets": [a.address for a in allowed]},
            )
        self._allowed: Tuple[Asset, ...] = tuple(allowed)

        if entries is None:
            entries = self._equal_entries(self._allowed)
        self._entries: Tuple[ProportionEntry, ...] = self.validate(
            [e.asset for e in entries],
            [e.weight for e in entries],
        )

    @classmethod
    def equal(cls, assets: Sequence[Asset]) -> "ProportionTable":
        """Table over `assets` with equal weights, remainder on the first asset."""
        return cls(assets)

    @staticmethod
    def _equal_entries(assets: Sequence[Asset]) -> List[ProportionEntry]:
        base, remainder = divmod(PERCENT_TOTAL, len(assets))
        return [
            ProportionEntry(asset, base + (remainder if i == 0 else 0))
            for i, asset in enumerate(assets)
        ]

    # =========================================================================
    # Validation and updates
    # =========================================================================

    def validate(
        self,
        assets: Sequence[Asset],
        weights: Sequence[int],
    ) -> Tuple[ProportionEntry, ...]:
        """
        Build a candidate table without installing it.

        Raises:
            InvalidProportionsError: On length mismatch, empty input, duplicate
                or unknown assets, non-integer or out-of-range weights, or a
                total other than 100
        """
        assets = list(assets)
        weights = list(weights)

        if len(assets) != len(weights):
            raise InvalidProportionsError(
                f"Length mismatch: {len(assets)} assets, {len(weights)} weights"
            )
        if not assets:
            raise InvalidProportionsError("Proportions must not be empty")
        if len(set(assets)) != len(assets):
            raise InvalidProportionsError(
                "Duplicate assets",
                details={"assets": [a.address for a in assets]},
            )

        unknown = [a.address for a in assets if a not in self._allowed]
        if unknown:
            raise InvalidProportionsError(
                "Assets not introduced to this fund",
                details={"assets": unknown},
            )

        for asset, weight in zip(assets, weights):
            if isinstance(weight, bool) or not isinstance(weight, int):
                raise InvalidProportionsError(
                    f"Weight for {asset} must be an integer, got {weight!r}"
                )
            if weight < 0 or weight > PERCENT_TOTAL:
                raise InvalidProportionsError(
                    f"Weight for {asset} out of range: {weight}"
                )

        total = sum(weights)
        if total != PERCENT_TOTAL:
            raise InvalidProportionsError(
                f"Weights sum to {total}, expected {PERCENT_TOTAL}",
                details={"total": total},
            )

        return tuple(ProportionEntry(a, w) for a, w in zip(assets, weights))

    def set_proportions(self, assets: Sequence[Asset], weights: Sequence[int]) -> None:
        """Validate and replace the whole table."""
        self._entries = self.validate(assets, weights)

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def entries(self) -> Tuple[ProportionEntry, ...]:
        return self._entries

    @property
    def allowed_assets(self) -> Tuple[Asset, ...]:
        return self._allowed

    @property
    def assets(self) -> List[Asset]:
        """Listed assets, in table order."""
        return [e.asset for e in self._entries]

    def is_allowed(self, asset: Asset) -> bool:
        return asset in self._allowed

    def weight_of(self, asset: Asset) -> int:
        """Target weight of an asset, 0 when unlisted."""
        for entry in self._entries:
            if entry.asset == asset:
                return entry.weight
        return 0

    def split(self, amount: int) -> Dict[Asset, int]:
        """
        Split an amount by target weight.

        portion = amount * weight // 100; the integer remainder goes to the
        first listed asset with a non-zero weight. Zero-weight assets are
        omitted.

        Example:
            >>> ProportionTable([a, b, c]).split(100)  # 34/33/33
            {a: 34, b: 33, c: 33}
        """
        portions: Dict[Asset, int] = {}
        for entry in self._entries:
            if entry.weight > 0:
                portions[entry.asset] = amount * entry.weight // PERCENT_TOTAL

        remainder = amount - sum(portions.values())
        if portions and remainder:
            first = next(iter(portions))
            portions[first] += remainder
        return portions

    def to_dict(self) -> Dict[str, int]:
        """Asset address -> weight, in table order."""
        return {e.asset.address: e.weight for e in self._entries}

    def __iter__(self) -> Iterator[ProportionEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, asset: object) -> bool:
        return any(e.asset == asset for e in self._entries)

    def __repr__(self) -> str:
        weights = ", ".join(f"{e.asset}={e.weight}" for e in self._entries)
        return f"ProportionTable({weights})"
