"""Tests for structured logging helpers."""

from __future__ import annotations

import logging

import pytest

from mint_registry.utils.logging import (
    DEFAULT_CONTEXT,
    LOG_FORMAT,
    ContextualFormatter,
    log_mint_event,
    setup_logger,
)


def test_setup_logger_injects_default_context(caplog: pytest.LogCaptureFixture) -> None:
    logger = setup_logger("tests.logging.defaults", context={"component": "Tests"})

    with caplog.at_level(logging.INFO):
        logger.info("hello")

    record = caplog.records[-1]
    assert record.component == "Tests"
    assert record.owner == "-"
    assert record.path == "-"


def test_per_call_extra_overrides_defaults(caplog: pytest.LogCaptureFixture) -> None:
    logger = setup_logger("tests.logging.override", context={"status": "idle"})

    with caplog.at_level(logging.INFO):
        logger.info("request", extra={"status": 201, "path": "/api/nfts"})

    record = caplog.records[-1]
    assert record.status == 201
    assert record.path == "/api/nfts"


def test_log_mint_event_created(caplog: pytest.LogCaptureFixture) -> None:
    logger = setup_logger("tests.logging.created")

    with caplog.at_level(logging.INFO):
        log_mint_event(logger, "created", owner="0xowner", tx_hash="0xhash", user_total=3)

    record = caplog.records[-1]
    assert record.levelno == logging.INFO
    assert record.owner == "0xowner"
    assert record.tx_hash == "0xhash"
    assert record.status == "created"
    assert record.getMessage() == "Mint created | context={'user_total': 3}"


def test_log_mint_event_rejected_is_warning(caplog: pytest.LogCaptureFixture) -> None:
    logger = setup_logger("tests.logging.rejected")

    with caplog.at_level(logging.INFO):
        log_mint_event(logger, "rejected", missing=["tokenId"])

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.owner == "-"
    assert "tokenId" in record.getMessage()


def test_contextual_formatter_fills_missing_fields() -> None:
    formatter = ContextualFormatter(LOG_FORMAT, DEFAULT_CONTEXT)
    record = logging.LogRecord("plain", logging.INFO, __file__, 1, "bare message", None, None)

    formatted = formatter.format(record)

    assert "component=-" in formatted
    assert "tx_hash=-" in formatted
    assert formatted.endswith("bare message")
