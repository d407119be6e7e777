"""
Structured Logging Tests.

Tests for JSON activity and audit logs and correlation IDs.
"""

import json
import uuid

import pytest

from index_fund.core.structured_logging import (
    AuditLogger,
    EventType,
    FundActivityLogger,
    clear_request_context,
    get_correlation_id,
    set_correlation_id,
    set_fund_context,
    with_correlation_id,
)


def _read_records(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


def _flush(logger):
    for handler in logger._logger.handlers:
        handler.flush()


@pytest.fixture(autouse=True)
def clean_context():
    clear_request_context()
    yield
    clear_request_context()


class TestActivityLog:
    """Test FundActivityLogger output."""

    def test_shares_minted(self, tmp_path):
        logger = FundActivityLogger(f"test-{uuid.uuid4()}", log_dir=tmp_path)
        set_fund_context("fund-1", "cid-1")

        logger.shares_minted("fund-1", "alice", 100, "199.4", transaction_id="tx-1")
        _flush(logger)

        record = _read_records(tmp_path / "activity.jsonl")[-1]
        assert record["event_type"] == EventType.SHARES_MINTED.value
        assert record["channel"] == "activity"
        assert record["context"]["correlation_id"] == "cid-1"
        assert record["context"]["holder"] == "alice"
        assert record["context"]["transaction_id"] == "tx-1"
        assert record["data"]["shares"] == 100

    def test_rollback_extra_fields(self, tmp_path):
        logger = FundActivityLogger(f"test-{uuid.uuid4()}", log_dir=tmp_path)

        logger.operation_rolled_back("fund-1", "tx-2", "buy", "Pool drained", refund=7)
        _flush(logger)

        record = _read_records(tmp_path / "activity.jsonl")[-1]
        assert record["level"] == "WARNING"
        assert record["data"]["refund"] == 7


    def test_shares_transferred(self, tmp_path):
        logger = FundActivityLogger(f"test-{uuid.uuid4()}", log_dir=tmp_path)

        logger.shares_transferred("fund-1", "alice", "bob", 25)
        _flush(logger)

        record = _read_records(tmp_path / "activity.jsonl")[-1]
        assert record["event_type"] == EventType.SHARES_TRANSFERRED.value
        assert record["context"]["holder"] == "alice"
        assert record["data"]["recipient"] == "bob"
        assert record["data"]["shares"] == 25

    def test_swap_compensated(self, tmp_path):
        logger = FundActivityLogger(f"test-{uuid.uuid4()}", log_dir=tmp_path)

        logger.swap_compensated("BTC.b", "AVAX", 1_000, 950, transaction_id="tx-3")
        logger.swap_compensated("WETH.e", "AVAX", 2_000, None, transaction_id="tx-3")
        _flush(logger)

        unwound, stranded = _read_records(tmp_path / "activity.jsonl")[-2:]
        assert unwound["event_type"] == EventType.SWAP_COMPENSATED.value
        assert unwound["level"] == "INFO"
        assert unwound["data"]["amount_out"] == 950
        assert unwound["data"]["succeeded"] is True
        assert stranded["level"] == "ERROR"
        assert stranded["data"]["succeeded"] is False


class TestAuditLog:
    """Test AuditLogger output."""

    def test_access_denied(self, tmp_path):
        logger = AuditLogger(f"test-{uuid.uuid4()}", log_dir=tmp_path)

        logger.access_denied(caller="mallory", action="rebalance", fund_id="fund-1")
        _flush(logger)

        record = _read_records(tmp_path / "audit.jsonl")[-1]
        assert record["event_type"] == EventType.ACCESS_DENIED.value
        assert record["channel"] == "audit"
        assert "mallory" in json.dumps(record)


class TestCorrelation:
    """Test correlation ID propagation."""

    def test_set_and_clear(self):
        cid = set_correlation_id()
        assert get_correlation_id() == cid
        clear_request_context()
        assert get_correlation_id() is None

    @pytest.mark.asyncio
    async def test_decorator_sets_id(self):
        @with_correlation_id
        async def operation():
            return get_correlation_id()

        assert await operation() is not None

    def test_decorator_keeps_existing(self):
        @with_correlation_id
        def operation():
            return get_correlation_id()

        set_correlation_id("outer")
        assert operation() == "outer"
