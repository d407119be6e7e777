"""
Logging for the index fund engine.

All module loggers are children of the ``index_fund`` package logger, which
owns a colored console handler and a rotating ``index_fund.log`` file. The
level comes from LOG_LEVEL until a loaded AppConfig sets it through
``configure_logging``.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "index_fund"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_RESET = "\033[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: "\033[92m",
    logging.WARNING: "\033[93m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[91m\033[1m",
}


class ColoredFormatter(logging.Formatter):
    """Console formatter coloring each line by level."""

    def format(self, record: logging.LogRecord) -> str:
        color = _LEVEL_COLORS.get(record.levelno, _RESET)
        return f"{color}{super().format(record)}{_RESET}"


def default_log_dir() -> Path:
    """
    Resolve the log directory.

    Uses INDEX_FUND_LOG_DIR when set, otherwise logs/ at the project root.
    """
    env_dir = os.getenv("INDEX_FUND_LOG_DIR")
    if env_dir:
        return Path(env_dir)
    return Path(__file__).parent.parent.parent / "logs"


def resolve_level(level: Union[int, str, None]) -> int:
    """Numeric level from a name, a number, or LOG_LEVEL when None."""
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper().strip(), logging.INFO)


def setup_logger(
    level: Union[int, str, None] = None,
    log_file: Union[str, Path, None] = None,
) -> logging.Logger:
    """
    Attach handlers to the package logger.

    Handlers are added once; later calls only change the level.

    Args:
        level: Log level name or number. Defaults to LOG_LEVEL or INFO
        log_file: Log file path. Defaults to <log dir>/index_fund.log

    Returns:
        The ``index_fund`` logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if logger.handlers:
        set_log_level(level)
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(console_handler)

    if log_file is None:
        log_file = default_log_dir() / "index_fund.log"
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    logger.propagate = False
    set_log_level(level)
    return logger


def set_log_level(level: Union[int, str, None]) -> int:
    """Apply a level to the package logger and its handlers."""
    numeric = resolve_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric)
    for handler in logger.handlers:
        handler.setLevel(numeric)
    return numeric


def configure_logging(log_level: str, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure package logging from settings.

    Args:
        log_level: Level from AppConfig.log_level
        log_file: Optional log file override

    Example:
        >>> config = load_config("config/index_fund.yaml")
        >>> configure_logging(config.log_level)
    """
    logger = setup_logger(log_level, log_file)
    logger.debug(f"Log level set to {log_level}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger.

    Names outside the package are placed under it so every record reaches
    the package handlers.
    """
    if not logging.getLogger(PACKAGE_LOGGER).handlers:
        setup_logger()
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
