"""
Unit Tests for the host logging helpers
"""

import logging

from lib.logger import ColoredFormatter, get_logger, setup_logging


def make_record(name, level=logging.INFO, msg="hello"):
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


class TestColoredFormatter:
    def test_component_icon_from_logger_name(self):
        formatter = ColoredFormatter(use_colors=False)
        line = formatter.format(make_record("ai_english_tutor.navigation"))

        assert "🧭" in line
        assert "ai_english_tutor.navigation | hello" in line

    def test_level_icon_fallback(self):
        formatter = ColoredFormatter(use_colors=False)
        line = formatter.format(make_record("other", logging.ERROR))
        assert "❌" in line

    def test_json_message_pretty_printed(self):
        formatter = ColoredFormatter(use_colors=False)
        line = formatter.format(make_record("other", msg='{"view": "home"}'))
        assert "{'view': 'home'}" in line


class TestSetup:
    def test_level_name_accepted(self):
        root = setup_logging("debug", use_colors=False)
        assert root.level == logging.DEBUG
        setup_logging(logging.INFO, use_colors=False)

    def test_structured_logger_appends_data(self, caplog):
        logger = get_logger("backend.test")
        with caplog.at_level(logging.INFO, logger="backend.test"):
            logger.success("Saved", data={"rows": 1})

        assert "✅ Saved\n  rows: 1" in caplog.text
