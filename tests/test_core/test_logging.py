"""Tests for setup_logging — root level and quieted access log."""

from __future__ import annotations

import logging

from alerting.core.config import reset_settings
from alerting.core.logging import setup_logging


class TestSetupLogging:
    def teardown_method(self) -> None:
        reset_settings()

    def test_root_level_override(self) -> None:
        setup_logging(level="DEBUG", fmt="console")
        assert logging.getLogger().level == logging.DEBUG

    def test_access_log_kept_at_warning(self) -> None:
        setup_logging(level="INFO", fmt="json")
        assert logging.getLogger("aiohttp.access").level == logging.WARNING

    def test_access_log_follows_stricter_root(self) -> None:
        setup_logging(level="ERROR", fmt="json")
        assert logging.getLogger("aiohttp.access").level == logging.ERROR
