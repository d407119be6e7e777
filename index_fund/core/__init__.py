"""
Core module for the index fund engine.

Provides shared models, the exception hierarchy, and logging utilities.
"""

from .exceptions import (
    FeedNotConfiguredError,
    FundError,
    FundStateError,
    IndexFundError,
    InsufficientBalanceError,
    InsufficientLiquidityError,
    InvalidProportionsError,
    OracleError,
    PriceUnavailableError,
    SlippageExceededError,
    SwapError,
    SwapTimeoutError,
    UnauthorizedError,
    ValidationError,
    ZeroAmountError,
)
from .logger import configure_logging, get_logger, set_log_level, setup_logger
from .models import (
    BPS_DENOMINATOR,
    NATIVE_ADDRESS,
    PERCENT_TOTAL,
    PRICE_DECIMALS,
    PRICE_SCALE,
    Asset,
    PriceQuote,
)
from .structured_logging import (
    AuditLogger,
    EventType,
    FundActivityLogger,
    LogChannel,
    LogContext,
    StructuredLogger,
    clear_request_context,
    get_activity_logger,
    get_audit_logger,
    get_correlation_id,
    set_correlation_id,
    set_fund_context,
    with_correlation_id,
)

__all__ = [
    # Models
    "Asset",
    "PriceQuote",
    "PRICE_DECIMALS",
    "PRICE_SCALE",
    "PERCENT_TOTAL",
    "BPS_DENOMINATOR",
    "NATIVE_ADDRESS",
    # Exceptions
    "IndexFundError",
    "FundError",
    "ZeroAmountError",
    "InsufficientBalanceError",
    "InvalidProportionsError",
    "UnauthorizedError",
    "FundStateError",
    "ValidationError",
    "OracleError",
    "PriceUnavailableError",
    "FeedNotConfiguredError",
    "SwapError",
    "SlippageExceededError",
    "InsufficientLiquidityError",
    "SwapTimeoutError",
    # Basic logging
    "setup_logger",
    "configure_logging",
    "set_log_level",
    "get_logger",
    # Structured logging
    "StructuredLogger",
    "FundActivityLogger",
    "AuditLogger",
    "get_activity_logger",
    "get_audit_logger",
    "LogChannel",
    "EventType",
    "LogContext",
    "set_correlation_id",
    "get_correlation_id",
    "set_fund_context",
    "clear_request_context",
    "with_correlation_id",
]
