"""
Logging setup for OneiroMetrics

Provides:
- Category tags so scrape output can be filtered by component
- Console and optional rotating file handlers
- Optional JSON lines output for log analysis

Usage:
    from logging_setup import get_logger, LogCategory

    logger = get_logger()
    logger.info(f"{LogCategory.SCRAPE} Processing {path}")
"""

import json
import logging
import re
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional, Set


ROOT_LOGGER_NAME = "oneirometrics"


class LogCategory:
    """Category tags prefixed to log messages"""

    PARSER = "[ONEIRO][PARSER]"
    RESOLVER = "[ONEIRO][RESOLVER]"
    METRICS = "[ONEIRO][METRICS]"
    FRONTMATTER = "[ONEIRO][FRONTMATTER]"
    RECONCILE = "[ONEIRO][RECONCILE]"
    SCRAPE = "[ONEIRO][SCRAPE]"
    FILE_IO = "[ONEIRO][FILE_IO]"
    CONFIG = "[ONEIRO][CONFIG]"


class CategoryFilter(logging.Filter):
    """Drop records whose category tag is disabled"""

    CATEGORY_PATTERN = re.compile(r'\[ONEIRO\]\[([^\]]+)\]')

    def __init__(self, disabled_categories: Optional[Iterable[str]] = None):
        super().__init__()
        self.disabled_categories: Set[str] = {
            c.upper() for c in (disabled_categories or [])
        }

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.disabled_categories:
            return True

        match = self.CATEGORY_PATTERN.search(record.getMessage())
        if not match:
            return True

        return match.group(1).upper() not in self.disabled_categories


class OneiroLogFormatter(logging.Formatter):
    """Plain text formatter with optional JSON output"""

    def __init__(self, json_output: bool = False):
        self.json_output = json_output
        super().__init__(
            fmt="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        if not self.json_output:
            return super().format(record)

        message = record.getMessage()
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }

        match = CategoryFilter.CATEGORY_PATTERN.search(message)
        if match:
            log_data["category"] = match.group(1)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[str] = None,
    json_output: bool = False,
    disabled_categories: Optional[Iterable[str]] = None,
    max_file_size_mb: int = 5,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the package logger.

    Safe to call more than once; existing handlers are replaced.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    category_filter = CategoryFilter(disabled_categories)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, level.upper(), logging.WARNING))
    console_handler.setFormatter(OneiroLogFormatter(json_output=False))
    console_handler.addFilter(category_filter)
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(OneiroLogFormatter(json_output=json_output))
        file_handler.addFilter(category_filter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get the package logger or one of its children"""
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
