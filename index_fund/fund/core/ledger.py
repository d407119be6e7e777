"""
Fund Ledger.

Share balances of a fund's holders and the total supply. Supply changes
only through mint and burn.
"""

import math
from fractions import Fraction
from typing import Dict, Optional

from ...core.exceptions import (
    FundStateError,
    InsufficientBalanceError,
    ValidationError,
    ZeroAmountError,
)
from ...core.logger import get_logger
from ...core.models import PriceQuote

logger = get_logger(__name__)


class FundLedger:
    """
    Share ledger of one fund.

    Example:
        >>> ledger = FundLedger()
        >>> ledger.mint("alice", 100)
        >>> ledger.burn("alice", 40)
        >>> ledger.balance_of("alice"), ledger.total_supply
        (60, 60)
    """

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._balances: Dict[str, int] = {}
        self._total_supply = 0
        if balances:
            self.restore(balances)

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def holders(self) -> Dict[str, int]:
        """Holders with a non-zero balance."""
        return dict(self._balances)

    @staticmethod
    def _check(holder: str, amount: int) -> None:
        if not holder:
            raise ValidationError("Holder must not be empty")
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError(f"Share amount must be an integer, got {amount!r}")
        if amount <= 0:
            raise ZeroAmountError(f"Share amount must be positive, got {amount}")

    def mint(self, holder: str, amount: int) -> None:
        """Issue shares to a holder."""
        self._check(holder, amount)
        self._balances[holder] = self._balances.get(holder, 0) + amount
        self._total_supply += amount

    def burn(self, holder: str, amount: int) -> None:
        """
        Destroy shares of a holder.

        Raises:
            InsufficientBalanceError: If amount exceeds the holder's balance
        """
        self._check(holder, amount)
        balance = self._balances.get(holder, 0)
        if amount > balance:
            raise InsufficientBalanceError(
                f"Cannot burn {amount} shares, balance is {balance}",
                details={"holder": holder, "balance": balance, "amount": amount},
            )
        remaining = balance - amount
        if remaining:
            self._balances[holder] = remaining
        else:
            del self._balances[holder]
        self._total_supply -= amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move shares between holders; supply is unchanged."""
        self._check(recipient, amount)
        self.burn(sender, amount)
        self.mint(recipient, amount)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._balances)

    def restore(self, balances: Dict[str, int]) -> None:
        """Replace all balances with a snapshot."""
        cleaned = {}
        for holder, amount in balances.items():
            if amount < 0:
                raise FundStateError(f"Negative balance for {holder}: {amount}")
            if amount:
                cleaned[holder] = amount
        self._balances = cleaned
        self._total_supply = sum(cleaned.values())

    # =========================================================================
    # Share pricing
    # =========================================================================

    def shares_for_deposit(
        self,
        deposit_value: Fraction,
        nav_before: Fraction,
        base_quote: PriceQuote,
    ) -> int:
        """
        Shares to issue for a deposit.

        An empty fund issues one share per base unit of deposited value.
        Otherwise shares = deposit_value * total_supply / nav_before, so a
        depositor's share of supply equals their share of fund value.

        Args:
            deposit_value: USD value actually added to the fund
            nav_before: Fund NAV in USD before the deposit
            base_quote: Quote of the base currency

        Returns:
            Shares to mint, rounded down

        Raises:
            FundStateError: If shares exist but the fund is worth nothing
        """
        if deposit_value <= 0:
            return 0

        if self._total_supply == 0:
            unit_value = base_quote.value_of(1)
            if unit_value <= 0:
                raise FundStateError(f"Base currency has no value: {base_quote.price}")
            return math.floor(deposit_value / unit_value)

        if nav_before <= 0:
            raise FundStateError(
                "Fund has shares outstanding but zero net asset value",
                details={"total_supply": self._total_supply},
            )
        return math.floor(deposit_value * self._total_supply / nav_before)
