"""Tests for structlog configuration."""

import logging

from dotctl.config.logging import configure_logging


class TestConfigureLogging:
    def test_quiet_by_default(self) -> None:
        configure_logging()
        assert logging.getLogger("dotctl").level == logging.WARNING
        assert len(logging.getLogger().handlers) == 1

    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("dotctl").level == logging.DEBUG

    def test_reconfigure_replaces_handler(self) -> None:
        configure_logging()
        configure_logging(log_json=True)
        assert len(logging.getLogger().handlers) == 1
