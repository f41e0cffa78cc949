"""
Tests for structured logging
"""

import json
import logging

from token_ledger.config import TokenLedgerConfig
from token_ledger.errors import InsufficientBalanceError
from token_ledger.ledger import TokenLedger
from token_ledger.logging_config import JSONFormatter, setup_logging, log_action

import pytest


class ListHandler(logging.Handler):
    """Collects formatted records"""

    def __init__(self):
        super().__init__()
        self.setFormatter(JSONFormatter())
        self.lines = []

    def emit(self, record):
        self.lines.append(json.loads(self.format(record)))


@pytest.fixture
def captured():
    logger = logging.getLogger("token_ledger.test")
    handler = ListHandler()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield logger, handler
    logger.removeHandler(handler)


class TestStructuredLogging:

    def test_log_action_fields(self, captured):
        logger, handler = captured

        log_action(logger, "info", "Mint applied", user_id="owner", action="mint",
                   extra={"amount": 2 ** 200})

        line = handler.lines[0]
        assert line["level"] == "INFO"
        assert line["message"] == "Mint applied"
        assert line["user_id"] == "owner"
        assert line["action"] == "mint"
        assert "resource" not in line
        assert line["extra"]["amount"] == 2 ** 200

    def test_log_action_respects_level(self, captured):
        logger, handler = captured
        logger.setLevel(logging.WARNING)

        log_action(logger, "info", "quiet")

        assert handler.lines == []

    def test_setup_logging_replaces_handlers(self):
        logger = setup_logging("DEBUG", logger_name="token_ledger.setup_test")
        logger = setup_logging("WARNING", logger_name="token_ledger.setup_test", log_format="text")

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_ledger_logs_operations(self):
        logger = logging.getLogger("token_ledger.ledger")
        handler = ListHandler()
        logger.addHandler(handler)
        previous_level = logger.level
        logger.setLevel(logging.INFO)
        try:
            ledger = TokenLedger(config=TokenLedgerConfig())
            ledger.mint("alice", 5, caller="owner")
            with pytest.raises(InsufficientBalanceError):
                ledger.burn("alice", 6)
        finally:
            logger.removeHandler(handler)
            logger.setLevel(previous_level)

        applied, rejected = handler.lines
        assert applied["action"] == "mint"
        assert applied["user_id"] == "owner"
        assert applied["extra"] == {"event": "Mint", "account": "alice", "amount": 5}
        assert rejected["level"] == "WARNING"
        assert rejected["extra"]["error"] == "InsufficientBalance"
        assert rejected["resource"] == "alice"
