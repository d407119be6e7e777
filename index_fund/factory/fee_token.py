"""
Fee Token.

Minimal fungible token ledger used to pay fund creation fees: balances,
allowances, owner-only minting.
"""

from typing import Dict, Protocol, Tuple

from ..core.exceptions import (
    InsufficientBalanceError,
    UnauthorizedError,
    ValidationError,
    ZeroAmountError,
)
from ..core.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# Protocols
# =============================================================================


class FeeTokenProtocol(Protocol):
    """Token interface the factory charges fees through."""

    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def transfer_from(self, spender: str, sender: str, recipient: str, amount: int) -> None: ...


class FeeToken:
    """
    In-memory fee token.

    Example:
        >>> token = FeeToken("AGI", owner="deployer")
        >>> token.mint("deployer", "alice", 100 * 10**18)
        >>> token.approve("alice", "fund_factory", 100 * 10**18)
    """

    def __init__(self, symbol: str, owner: str, decimals: int = 18):
        self.symbol = symbol
        self.decimals = decimals
        self._owner = owner
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply = 0

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @staticmethod
    def _check_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError(f"Token amount must be an integer, got {amount!r}")
        if amount <= 0:
            raise ZeroAmountError(f"Token amount must be positive, got {amount}")

    def mint(self, caller: str, to: str, amount: int) -> None:
        """Create tokens (owner only)."""
        if caller != self._owner:
            raise UnauthorizedError(f"Only the {self.symbol} owner may mint", caller=caller)
        if not to:
            raise ValidationError("Mint recipient must not be empty")
        self._check_amount(amount)
        self._balances[to] = self._balances.get(to, 0) + amount
        self._total_supply += amount
        logger.info(f"Minted {amount} {self.symbol} to {to}")

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set the amount `spender` may move from `owner`; 0 revokes."""
        if amount < 0:
            raise ValidationError(f"Allowance must be >= 0, got {amount}")
        self._allowances[(owner, spender)] = amount

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move tokens from `sender` to `recipient`."""
        self._check_amount(amount)
        if not recipient:
            raise ValidationError("Recipient must not be empty")
        balance = self._balances.get(sender, 0)
        if amount > balance:
            raise InsufficientBalanceError(
                f"{sender} holds {balance} {self.symbol}, cannot transfer {amount}",
                details={"account": sender, "balance": balance, "amount": amount},
            )
        self._balances[sender] = balance - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

    def transfer_from(self, spender: str, sender: str, recipient: str, amount: int) -> None:
        """
        Move tokens on behalf of `sender` using the spender's allowance.

        Raises:
            InsufficientBalanceError: If allowance or balance is too small
        """
        self._check_amount(amount)
        allowed = self.allowance(sender, spender)
        if amount > allowed:
            raise InsufficientBalanceError(
                f"Allowance of {spender} is {allowed} {self.symbol}, need {amount}",
                details={"owner": sender, "spender": spender, "allowance": allowed},
            )
        self.transfer(sender, recipient, amount)
        self._allowances[(sender, spender)] = allowed - amount
