"""Tests for logging configuration."""

import logging

from dupliverse.app_logging import configure_logging


def test_configure_logging_idempotent() -> None:
    logger = logging.getLogger("dupliverse")
    logger.handlers.clear()

    configure_logging()
    first_count = len(logger.handlers)

    configure_logging("debug")
    second_count = len(logger.handlers)

    assert first_count == 1
    assert second_count == 1
    assert logger.level == logging.DEBUG


def test_configure_logging_quiets_http_client() -> None:
    configure_logging()

    assert logging.getLogger("httpx").level == logging.WARNING
