"""
Tests for summary statistics
"""

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from metric_stats import summarize, time_buckets
from models import CalloutMetadata, DreamEntry, EntrySource


def entry(day: str, words: int) -> DreamEntry:
    return DreamEntry(
        date=day,
        title="Dream",
        content="",
        source=EntrySource(document_id="note.md"),
        word_count=words,
        metrics={},
        callout_metadata=CalloutMetadata(type="dream"),
    )


class TestSummarize:
    def test_numeric_summary(self):
        summary = summarize({"Clarity": [4, 2, 3]})["Clarity"]

        assert summary.count == 3
        assert summary.total == 9
        assert summary.average == 3
        assert summary.min == 2
        assert summary.max == 4

    def test_text_values_counted_not_averaged(self):
        summary = summarize({"Mood": ["calm", "odd", 3]})["Mood"]

        assert summary.count == 3
        assert summary.non_numeric == 2
        assert summary.average == 3

    def test_only_text(self):
        summary = summarize({"Dream Themes": ["flying", "water"]})["Dream Themes"]

        assert summary.average is None
        assert summary.min is None

    def test_average_rounded(self):
        assert summarize({"X": [1, 2, 2]})["X"].average == 1.67


class TestTimeBuckets:
    def test_grouped_by_month_oldest_first(self):
        buckets = time_buckets([
            entry("2025-06-03", 10),
            entry("2025-05-20", 5),
            entry("2025-06-28", 7),
        ])

        assert [b.period for b in buckets] == ["2025-05", "2025-06"]
        assert buckets[1].entries == 2
        assert buckets[1].words == 17

    def test_empty(self):
        assert time_buckets([]) == []
