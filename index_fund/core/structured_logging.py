"""
Structured logging module.

Provides JSON-lines logging with correlation IDs and separate channels for
fund activity (mints, burns, swaps) and audit events (fund creation,
proportion changes, access denials).
"""

import inspect
import json
import logging
import os
import sys
import uuid
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from .logger import default_log_dir

# Context variables for correlation tracking
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
fund_id_var: ContextVar[Optional[str]] = ContextVar("fund_id", default=None)

F = TypeVar("F", bound=Callable[..., Any])


class LogChannel(Enum):
    """Log channels for different purposes."""

    APPLICATION = "application"
    ACTIVITY = "activity"
    AUDIT = "audit"


class EventType(Enum):
    """Standard event types for structured logging."""

    # Ledger events
    SHARES_MINTED = "shares.minted"
    SHARES_BURNED = "shares.burned"
    SHARES_TRANSFERRED = "shares.transferred"

    # Swap events
    SWAP_EXECUTED = "swap.executed"
    SWAP_FAILED = "swap.failed"
    SWAP_COMPENSATED = "swap.compensated"

    # Operation events
    OPERATION_ROLLED_BACK = "operation.rolled_back"
    REBALANCE_COMPLETED = "rebalance.completed"

    # Audit events
    FUND_CREATED = "fund.created"
    PROPORTIONS_CHANGED = "proportions.changed"
    MANAGER_CHANGED = "manager.changed"
    CONFIG_CHANGED = "config.changed"
    ACCESS_DENIED = "access.denied"


@dataclass
class LogContext:
    """Context information for structured logs."""

    correlation_id: Optional[str] = None
    fund_id: Optional[str] = None
    holder: Optional[str] = None
    asset: Optional[str] = None
    transaction_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None:
                if key == "extra":
                    result.update(value)
                else:
                    result[key] = value
        return result


@dataclass
class StructuredLogRecord:
    """Structured log record for JSON output."""

    timestamp: str
    level: str
    channel: str
    event_type: str
    message: str
    logger_name: str
    context: Dict[str, Any] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "channel": self.channel,
            "event_type": self.event_type,
            "message": self.message,
            "logger": self.logger_name,
            "context": self.context,
            "data": self.data,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class JSONFormatter(logging.Formatter):
    """Formatter that outputs JSON structured logs."""

    def __init__(self, channel: LogChannel = LogChannel.APPLICATION):
        super().__init__()
        self._channel = channel

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        context = {
            "correlation_id": correlation_id_var.get(),
            "fund_id": fund_id_var.get(),
        }
        context = {k: v for k, v in context.items() if v is not None}

        if hasattr(record, "context") and isinstance(record.context, dict):
            context.update(record.context)

        event_type = getattr(record, "event_type", "log.message")
        if isinstance(event_type, EventType):
            event_type = event_type.value

        data = getattr(record, "data", {})
        if not isinstance(data, dict):
            data = {"value": data}

        structured = StructuredLogRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=record.levelname,
            channel=self._channel.value,
            event_type=event_type,
            message=record.getMessage(),
            logger_name=record.name,
            context=context,
            data=data,
        )

        return structured.to_json()


class StructuredLogger:
    """
    Structured logger with JSON output and correlation ID support.

    Each channel writes to its own <channel>.jsonl file in the log directory.
    """

    def __init__(
        self,
        name: str,
        channel: LogChannel = LogChannel.APPLICATION,
        level: int = logging.INFO,
        log_dir: Optional[Path] = None,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            channel: Log channel
            level: Log level
            log_dir: Directory for log files
        """
        self._name = name
        self._channel = channel
        self._logger = logging.getLogger(f"structured.{channel.value}.{name}")
        self._logger.setLevel(level)
        self._logger.propagate = False

        if self._logger.handlers:
            return

        if log_dir is None:
            log_dir = default_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / f"{channel.value}.jsonl"
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=50 * 1024 * 1024,  # 50 MB
            backupCount=10,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter(channel))
        self._logger.addHandler(file_handler)

        if os.getenv("LOG_JSON_CONSOLE", "false").lower() == "true":
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(JSONFormatter(channel))
            self._logger.addHandler(console_handler)

    def _log(
        self,
        level: int,
        event_type: Union[str, EventType],
        message: str,
        context: Optional[LogContext] = None,
        **data: Any,
    ) -> None:
        extra = {
            "event_type": event_type,
            "data": data,
        }
        if context:
            extra["context"] = context.to_dict()

        self._logger.log(level, message, extra=extra)

    def info(
        self,
        event_type: Union[str, EventType],
        message: str,
        context: Optional[LogContext] = None,
        **data: Any,
    ) -> None:
        """Log info message."""
        self._log(logging.INFO, event_type, message, context, **data)

    def warning(
        self,
        event_type: Union[str, EventType],
        message: str,
        context: Optional[LogContext] = None,
        **data: Any,
    ) -> None:
        """Log warning message."""
        self._log(logging.WARNING, event_type, message, context, **data)

    def error(
        self,
        event_type: Union[str, EventType],
        message: str,
        context: Optional[LogContext] = None,
        **data: Any,
    ) -> None:
        """Log error message."""
        self._log(logging.ERROR, event_type, message, context, **data)


class FundActivityLogger(StructuredLogger):
    """Specialized logger for ledger and swap activity."""

    def __init__(self, name: str, log_dir: Optional[Path] = None):
        super().__init__(name, LogChannel.ACTIVITY, log_dir=log_dir)

    def shares_minted(
        self,
        fund_id: str,
        holder: str,
        shares: int,
        deposit_value: str,
        transaction_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        """Log share issuance."""
        ctx = LogContext(fund_id=fund_id, holder=holder, transaction_id=transaction_id)
        self.info(
            EventType.SHARES_MINTED,
            f"Minted {shares} shares to {holder}",
            context=ctx,
            shares=shares,
            deposit_value=deposit_value,
            **extra,
        )

    def shares_burned(
        self,
        fund_id: str,
        holder: str,
        shares: int,
        proceeds: int,
        transaction_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        """Log share redemption."""
        ctx = LogContext(fund_id=fund_id, holder=holder, transaction_id=transaction_id)
        self.info(
            EventType.SHARES_BURNED,
            f"Burned {shares} shares from {holder} for {proceeds}",
            context=ctx,
            shares=shares,
            proceeds=proceeds,
            **extra,
        )

    def shares_transferred(
        self,
        fund_id: str,
        sender: str,
        recipient: str,
        shares: int,
        **extra: Any,
    ) -> None:
        """Log a share transfer between holders."""
        ctx = LogContext(fund_id=fund_id, holder=sender)
        self.info(
            EventType.SHARES_TRANSFERRED,
            f"Transferred {shares} shares from {sender} to {recipient}",
            context=ctx,
            recipient=recipient,
            shares=shares,
            **extra,
        )

    def swap_executed(
        self,
        asset_in: str,
        asset_out: str,
        amount_in: int,
        amount_out: int,
        **extra: Any,
    ) -> None:
        """Log a completed swap leg."""
        self.info(
            EventType.SWAP_EXECUTED,
            f"Swap {amount_in} {asset_in} -> {amount_out} {asset_out}",
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=amount_in,
            amount_out=amount_out,
            **extra,
        )

    def swap_failed(
        self,
        asset_in: str,
        asset_out: str,
        amount_in: int,
        reason: str,
        **extra: Any,
    ) -> None:
        """Log a failed swap leg."""
        self.warning(
            EventType.SWAP_FAILED,
            f"Swap {amount_in} {asset_in} -> {asset_out} failed: {reason}",
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=amount_in,
            reason=reason,
            **extra,
        )

    def swap_compensated(
        self,
        asset_in: str,
        asset_out: str,
        amount_in: int,
        amount_out: Optional[int],
        **extra: Any,
    ) -> None:
        """Log a compensation swap; amount_out is None when it failed."""
        if amount_out is None:
            self.error(
                EventType.SWAP_COMPENSATED,
                f"Could not unwind {amount_in} {asset_in} -> {asset_out}",
                asset_in=asset_in,
                asset_out=asset_out,
                amount_in=amount_in,
                succeeded=False,
                **extra,
            )
            return
        self.info(
            EventType.SWAP_COMPENSATED,
            f"Unwound {amount_in} {asset_in} -> {amount_out} {asset_out}",
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=amount_in,
            amount_out=amount_out,
            succeeded=True,
            **extra,
        )

    def operation_rolled_back(
        self,
        fund_id: str,
        transaction_id: str,
        kind: str,
        reason: str,
        **extra: Any,
    ) -> None:
        """Log a compensated buy or sell."""
        ctx = LogContext(fund_id=fund_id, transaction_id=transaction_id)
        self.warning(
            EventType.OPERATION_ROLLED_BACK,
            f"{kind} rolled back: {reason}",
            context=ctx,
            kind=kind,
            reason=reason,
            **extra,
        )

    def rebalance_completed(
        self,
        fund_id: str,
        transaction_id: str,
        executed_legs: int,
        failed_legs: int,
        **extra: Any,
    ) -> None:
        """Log rebalance completion."""
        ctx = LogContext(fund_id=fund_id, transaction_id=transaction_id)
        self.info(
            EventType.REBALANCE_COMPLETED,
            f"Rebalance finished: {executed_legs} legs executed, {failed_legs} failed",
            context=ctx,
            executed_legs=executed_legs,
            failed_legs=failed_legs,
            **extra,
        )


class AuditLogger(StructuredLogger):
    """Specialized logger for audit events."""

    def __init__(self, name: str, log_dir: Optional[Path] = None):
        super().__init__(name, LogChannel.AUDIT, log_dir=log_dir)

    def fund_created(
        self,
        fund_id: str,
        name: str,
        ticker: str,
        creator: str,
        **extra: Any,
    ) -> None:
        """Log fund creation."""
        ctx = LogContext(fund_id=fund_id, holder=creator)
        self.info(
            EventType.FUND_CREATED,
            f"Fund created: {name} ({ticker})",
            context=ctx,
            name=name,
            ticker=ticker,
            **extra,
        )

    def proportions_changed(
        self,
        fund_id: str,
        changed_by: str,
        old_value: Dict[str, int],
        new_value: Dict[str, int],
        **extra: Any,
    ) -> None:
        """Log a target proportion change."""
        ctx = LogContext(fund_id=fund_id, holder=changed_by)
        self.info(
            EventType.PROPORTIONS_CHANGED,
            f"Proportions changed by {changed_by}",
            context=ctx,
            old_value=old_value,
            new_value=new_value,
            **extra,
        )

    def manager_changed(
        self,
        fund_id: str,
        changed_by: str,
        manager: str,
        granted: bool,
        **extra: Any,
    ) -> None:
        """Log a manager role grant or revocation."""
        ctx = LogContext(fund_id=fund_id, holder=changed_by)
        action = "granted" if granted else "revoked"
        self.info(
            EventType.MANAGER_CHANGED,
            f"Manager role {action}: {manager}",
            context=ctx,
            manager=manager,
            granted=granted,
            **extra,
        )

    def config_changed(
        self,
        config_key: str,
        old_value: Any,
        new_value: Any,
        changed_by: Optional[str] = None,
        **extra: Any,
    ) -> None:
        """Log configuration change."""
        ctx = LogContext(holder=changed_by)
        self.info(
            EventType.CONFIG_CHANGED,
            f"Config changed: {config_key}",
            context=ctx,
            config_key=config_key,
            old_value=str(old_value),
            new_value=str(new_value),
            **extra,
        )

    def access_denied(
        self,
        caller: str,
        action: str,
        fund_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        """Log a rejected privileged call."""
        ctx = LogContext(fund_id=fund_id, holder=caller)
        self.warning(
            EventType.ACCESS_DENIED,
            f"Access denied: {caller} attempted {action}",
            context=ctx,
            action=action,
            **extra,
        )


# Context management functions
def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID in context, returns the ID used."""
    cid = correlation_id or generate_correlation_id()
    correlation_id_var.set(cid)
    return cid


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID."""
    return correlation_id_var.get()


def set_fund_context(fund_id: str, correlation_id: Optional[str] = None) -> str:
    """Set fund context, returns correlation ID."""
    fund_id_var.set(fund_id)
    return set_correlation_id(correlation_id)


def clear_request_context() -> None:
    """Clear all request context."""
    correlation_id_var.set(None)
    fund_id_var.set(None)


def with_correlation_id(func: F) -> F:
    """Decorator to ensure correlation ID is set."""

    if inspect.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            if not get_correlation_id():
                set_correlation_id()
            return await func(*args, **kwargs)

        return async_wrapper  # type: ignore
    else:

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            if not get_correlation_id():
                set_correlation_id()
            return func(*args, **kwargs)

        return sync_wrapper  # type: ignore


# Logger factory functions
_loggers: Dict[str, StructuredLogger] = {}


def get_activity_logger(name: str = "activity") -> FundActivityLogger:
    """Get or create a fund activity logger."""
    key = f"activity.{name}"
    if key not in _loggers:
        _loggers[key] = FundActivityLogger(name)
    return _loggers[key]  # type: ignore


def get_audit_logger(name: str = "audit") -> AuditLogger:
    """Get or create an audit logger."""
    key = f"audit.{name}"
    if key not in _loggers:
        _loggers[key] = AuditLogger(name)
    return _loggers[key]  # type: ignore
