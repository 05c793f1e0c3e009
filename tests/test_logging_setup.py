"""
Tests for logging setup
"""

import json
import logging
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from logging_setup import CategoryFilter, LogCategory, OneiroLogFormatter, get_logger, setup_logging


def make_record(message: str) -> logging.LogRecord:
    return logging.LogRecord("oneirometrics.test", logging.INFO, __file__, 1, message, None, None)


class TestCategoryFilter:
    def test_disabled_category_dropped(self):
        category_filter = CategoryFilter(["parser"])

        assert not category_filter.filter(make_record(f"{LogCategory.PARSER} tree built"))
        assert category_filter.filter(make_record(f"{LogCategory.SCRAPE} run done"))
        assert category_filter.filter(make_record("untagged message"))

    def test_nothing_disabled(self):
        assert CategoryFilter().filter(make_record(f"{LogCategory.PARSER} tree built"))


class TestFormatter:
    def test_json_output(self):
        line = OneiroLogFormatter(json_output=True).format(make_record(f"{LogCategory.RECONCILE} conflict"))
        data = json.loads(line)

        assert data["level"] == "INFO"
        assert data["category"] == "RECONCILE"
        assert data["message"].endswith("conflict")


class TestSetupLogging:
    def test_file_handler_writes_json(self, tmp_path):
        log_file = tmp_path / "logs" / "oneiro.log"
        setup_logging(level="ERROR", log_file=str(log_file), json_output=True)

        get_logger("test").info(f"{LogCategory.SCRAPE} hello")
        for handler in logging.getLogger("oneirometrics").handlers:
            handler.flush()

        data = json.loads(log_file.read_text(encoding="utf-8").strip())
        assert data["category"] == "SCRAPE"
        assert data["logger"] == "oneirometrics.test"

    def test_repeat_setup_replaces_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_get_logger_names(self):
        assert get_logger().name == "oneirometrics"
        assert get_logger("cli").name == "oneirometrics.cli"
