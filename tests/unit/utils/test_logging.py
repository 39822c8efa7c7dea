"""
Unit tests for the privacy-safe logging helpers.
"""

import logging

import pytest

from reply_core.utils.logging import RedactingFormatter, configure_logging, mask_email


class TestMaskEmail:

    def test_masks_user_and_domain(self):
        assert mask_email("john@example.com") == "j**n@e******.com"

    def test_short_username(self):
        assert mask_email("jo@example.co.uk") == "**@e******.co.uk"

    @pytest.mark.parametrize("value", ["", "not an address"])
    def test_non_addresses_unchanged(self, value):
        assert mask_email(value) == value


class TestRedactingFormatter:

    def test_addresses_masked_in_output(self):
        formatter = RedactingFormatter("%(message)s")
        record = logging.LogRecord(
            "reply_core", logging.INFO, __file__, 1,
            "Drafted reply for %s", ("john@example.com",), None
        )

        assert formatter.format(record) == "Drafted reply for j**n@e******.com"


class TestConfigureLogging:

    def test_console_and_file_handlers(self, tmp_path):
        log_file = tmp_path / "logs" / "reply_core.log"

        logger = configure_logging("reply_core.test", level="DEBUG", log_file=str(log_file))
        logger.info("Message from jane@example.org")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert all(isinstance(h.formatter, RedactingFormatter) for h in logger.handlers)
        content = log_file.read_text(encoding="utf-8")
        assert "j**e@e******.org" in content
        assert "jane@example.org" not in content

        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_reconfigure_replaces_handlers(self):
        configure_logging("reply_core.test2")
        logger = configure_logging("reply_core.test2")

        assert len(logger.handlers) == 1
        logger.handlers.clear()
