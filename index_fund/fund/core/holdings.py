"""
Holdings.

Amounts of each asset custodied by a fund.
"""

from typing import Dict, Iterator, List, Optional, Tuple

from ...core.exceptions import FundStateError, InsufficientBalanceError
from ...core.models import Asset


class Holdings:
    """
    Asset custody of one fund.

    Assets whose amount drops to zero are removed.
    """

    def __init__(self, amounts: Optional[Dict[Asset, int]] = None):
        self._amounts: Dict[Asset, int] = {}
        if amounts:
            self.restore(amounts)

    def get(self, asset: Asset) -> int:
        return self._amounts.get(asset, 0)

    def credit(self, asset: Asset, amount: int) -> None:
        if amount < 0:
            raise FundStateError(f"Cannot credit negative amount {amount} of {asset}")
        if amount:
            self._amounts[asset] = self._amounts.get(asset, 0) + amount

    def debit(self, asset: Asset, amount: int) -> None:
        """
        Remove an amount of an asset.

        Raises:
            InsufficientBalanceError: If the fund holds less than amount
        """
        if amount < 0:
            raise FundStateError(f"Cannot debit negative amount {amount} of {asset}")
        held = self._amounts.get(asset, 0)
        if amount > held:
            raise InsufficientBalanceError(
                f"Fund holds {held} {asset}, cannot debit {amount}",
                details={"asset": asset.address, "held": held, "amount": amount},
            )
        remaining = held - amount
        if remaining:
            self._amounts[asset] = remaining
        else:
            self._amounts.pop(asset, None)

    @property
    def assets(self) -> List[Asset]:
        return list(self._amounts)

    def items(self) -> List[Tuple[Asset, int]]:
        return list(self._amounts.items())

    def snapshot(self) -> Dict[Asset, int]:
        return dict(self._amounts)

    def restore(self, amounts: Dict[Asset, int]) -> None:
        """Replace all amounts with a snapshot."""
        for asset, amount in amounts.items():
            if amount < 0:
                raise FundStateError(f"Negative holding of {asset}: {amount}")
        self._amounts = {a: amt for a, amt in amounts.items() if amt}

    def to_dict(self) -> Dict[str, int]:
        """Asset address -> amount."""
        return {asset.address: amount for asset, amount in self._amounts.items()}

    def __iter__(self) -> Iterator[Asset]:
        return iter(list(self._amounts))

    def __len__(self) -> int:
        return len(self._amounts)
