"""
Pytest configuration and fixtures for OneiroMetrics tests.
"""

import logging
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from models import MetricConfig, ValueKind
from document_store import MemoryStore
from logging_setup import ROOT_LOGGER_NAME


FLIGHT_DOCUMENT = (
    "> [!journal-entry]\n"
    "> [!dream-diary] My Flight ^20250603\n"
    "> > [!dream-metrics]\n"
    "> > Clarity: 4, Vividness: 5\n"
)

NESTED_DOCUMENT = """---
created: 20250601
tags:
  - dream
---

> [!journal-entry] Monday, June 2, 2025
> Slept badly, woke at 4.
> > [!dream-diary] The Library [[Dreams/2025-06-02|Library Dream]]
> > I walked through endless shelves of glowing books.
> > Somebody kept calling my name.
> > > [!dream-metrics]
> > > Sensory Detail: 4, Emotional Recall: 3,
> > > Lost Segments: —, Clarity: 2
> > [!dream-diary] Second Dream
> > Falling from a tower into dark water.
> > > [!dream-metrics]
> > > Sensory Detail: 2, Clarity: 1
"""


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging so caplog sees package records in every test"""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def metric_configs():
    """Small vocabulary: Clarity lives in front matter, Vividness only in callouts"""
    return [
        MetricConfig(name="Clarity", frontmatter_property="dream-clarity"),
        MetricConfig(name="Vividness"),
        MetricConfig(name="Sensory Detail", frontmatter_property="sensory"),
        MetricConfig(name="Emotional Recall"),
        MetricConfig(name="Lost Segments"),
        MetricConfig(name="Words"),
        MetricConfig(name="Dream Themes", frontmatter_property="dream-themes", value_kind=ValueKind.LIST),
        MetricConfig(name="Mood", frontmatter_property="mood", value_kind=ValueKind.STRING),
        MetricConfig(name="Disabled", frontmatter_property="disabled", enabled=False),
    ]


@pytest.fixture
def processing_date():
    return date(2025, 7, 1)


@pytest.fixture
def flight_document():
    return FLIGHT_DOCUMENT


@pytest.fixture
def nested_document():
    return NESTED_DOCUMENT


@pytest.fixture
def memory_store():
    """In-memory store with a handful of journal notes"""
    return MemoryStore({
        "Journal/2025/flight.md": FLIGHT_DOCUMENT,
        "Journal/2025/library.md": NESTED_DOCUMENT,
        "Journal/2025/plain.md": "Just some notes, no callouts.\n",
        "Journal/archive/old.md": FLIGHT_DOCUMENT.replace("20250603", "20240101"),
        "Templates/dream.md": "> [!journal-entry]\n> [!dream-diary] Template\n",
    })
