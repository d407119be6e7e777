"""
Custom exceptions for the index fund engine.

Exception hierarchy:
    IndexFundError (base)
    ├── FundError
    │   ├── ZeroAmountError
    │   ├── InsufficientBalanceError
    │   ├── InvalidProportionsError
    │   ├── UnauthorizedError
    │   ├── FundStateError
    │   └── ValidationError
    ├── OracleError
    │   ├── PriceUnavailableError
    │   └── FeedNotConfiguredError
    └── SwapError
        ├── SlippageExceededError
        ├── InsufficientLiquidityError
        └── SwapTimeoutError
"""

from typing import Any


class IndexFundError(Exception):
    """Base exception for all index fund errors."""

    default_message = "Index fund error occurred"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"[{self.code}]")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r})"
        )


# Fund-related errors
class FundError(IndexFundError):
    """Base exception for fund accounting errors."""

    default_message = "Fund error occurred"


class ZeroAmountError(FundError):
    """Amount must be greater than zero."""

    default_message = "Amount must be greater than zero"


class InsufficientBalanceError(FundError):
    """Balance too small for the requested operation."""

    default_message = "Insufficient balance"


class InvalidProportionsError(FundError):
    """Proportions are malformed or do not sum to 100."""

    default_message = "Invalid proportions"


class UnauthorizedError(FundError):
    """Caller is not allowed to perform the operation."""

    default_message = "Unauthorized"

    def __init__(
        self,
        message: str | None = None,
        caller: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
        self.caller = caller

    def __str__(self) -> str:
        base = super().__str__()
        if self.caller:
            return f"{base} caller={self.caller}"
        return base


class FundStateError(FundError):
    """Fund is in a state where the operation cannot be priced or applied."""

    default_message = "Invalid fund state"


class ValidationError(FundError):
    """Input validation failed."""

    default_message = "Validation failed"


# Oracle-related errors
class OracleError(IndexFundError):
    """Base exception for price oracle errors."""

    default_message = "Oracle error occurred"


class PriceUnavailableError(OracleError):
    """Price is zero, negative, stale, or could not be fetched."""

    default_message = "Price unavailable"


class FeedNotConfiguredError(OracleError):
    """No price feed is registered for the asset."""

    default_message = "Price feed not configured"


# Swap-related errors
class SwapError(IndexFundError):
    """Base exception for swap execution errors."""

    default_message = "Swap failed"

    def __init__(
        self,
        message: str | None = None,
        asset_in: str | None = None,
        asset_out: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
        self.asset_in = asset_in
        self.asset_out = asset_out

    def __str__(self) -> str:
        base = super().__str__()
        if self.asset_in or self.asset_out:
            return f"{base} route={self.asset_in}->{self.asset_out}"
        return base


class SlippageExceededError(SwapError):
    """Realized output fell below the requested minimum."""

    default_message = "Slippage exceeded"


class InsufficientLiquidityError(SwapError):
    """No route or not enough liquidity for the swap."""

    default_message = "Insufficient liquidity"


class SwapTimeoutError(SwapError):
    """Swap router did not answer in time."""

    default_message = "Swap timed out"
