"""
Logger Tests.

Tests for the package logger and config-driven log levels.
"""

import logging

import pytest

from index_fund.cli import FundCLI
from index_fund.core.logger import (
    PACKAGE_LOGGER,
    configure_logging,
    get_logger,
    resolve_level,
    set_log_level,
)


@pytest.fixture(autouse=True)
def restore_level():
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    level = package_logger.level
    yield
    set_log_level(level)


class TestLogger:
    """Test logger hierarchy and levels."""

    def test_module_loggers_share_package_handlers(self):
        logger = get_logger("index_fund.fund.core.engine")

        assert logger.name == "index_fund.fund.core.engine"
        assert logger.parent is logging.getLogger(PACKAGE_LOGGER)
        assert logging.getLogger(PACKAGE_LOGGER).handlers

    def test_foreign_names_nested_under_package(self):
        assert get_logger("scripts.backfill").name == "index_fund.scripts.backfill"

    @pytest.mark.parametrize(
        "level,expected",
        [("debug", logging.DEBUG), (" ERROR ", logging.ERROR), (logging.WARNING, logging.WARNING), ("verbose", logging.INFO)],
    )
    def test_resolve_level(self, level, expected):
        assert resolve_level(level) == expected

    def test_configure_logging_sets_level(self):
        configure_logging("ERROR")

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        assert package_logger.level == logging.ERROR
        assert all(h.level == logging.ERROR for h in package_logger.handlers)
        assert get_logger("index_fund.oracle").getEffectiveLevel() == logging.ERROR

    @pytest.mark.asyncio
    async def test_cli_applies_configured_level(self, tmp_path):
        config_file = tmp_path / "index_fund.yaml"
        config_file.write_text(
            f'log_level: "DEBUG"\nstorage:\n  db_path: "{tmp_path / "cli.db"}"\n'
        )

        code = await FundCLI().run(["--config", str(config_file), "list"])

        assert code == 0
        assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG
