"""
Tests for inline metrics parsing
"""

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from metrics_parser import (
    MetricsTextParser,
    coerce_value,
    content_metrics,
    count_words,
    length_category,
    metrics_text,
    sentiment_score,
    serialize_metrics,
)


class TestCoercion:
    """Test value coercion"""

    def test_numbers(self):
        assert coerce_value("4") == 4
        assert isinstance(coerce_value("4"), int)
        assert coerce_value(" 3.5 ") == 3.5
        assert coerce_value("-2") == -2

    def test_text(self):
        assert coerce_value(" calm ") == "calm"
        assert coerce_value("4 stars") == "4 stars"


class TestMetricsText:
    """Test joining metrics block lines"""

    def test_marker_removed_and_lines_joined(self):
        lines = ["> > [!dream-metrics]", "> > Clarity: 4,", "> >   Vividness: 5"]
        assert metrics_text(lines) == "Clarity: 4, Vividness: 5"

    def test_text_after_marker_kept(self):
        assert metrics_text(["> [!dream-metrics] Clarity: 2"]) == "Clarity: 2"


class TestMetricsTextParser:
    """Test parsing against a metric vocabulary"""

    @pytest.fixture
    def parser(self, metric_configs):
        return MetricsTextParser(metric_configs)

    def test_parse_basic(self, parser):
        parsed = parser.parse("Clarity: 4, Vividness: 5")

        assert parsed.values == {"Clarity": 4, "Vividness": 5}
        assert parsed.unknown == []

    def test_names_are_canonicalized(self, parser):
        parsed = parser.parse("clarity: 4, SENSORY DETAIL: 3")
        assert parsed.values == {"Clarity": 4, "Sensory Detail": 3}

    def test_unknown_names_kept_verbatim(self, parser):
        parsed = parser.parse("Clarity: 4, Flying Height: 12")

        assert parsed.values["Flying Height"] == 12
        assert parsed.unknown == ["Flying Height"]

    def test_placeholder_and_empty_values_skipped(self, parser):
        parsed = parser.parse("Clarity: —, Vividness: , Lost Segments: 1, ,")
        assert parsed.values == {"Lost Segments": 1}

    def test_string_metric_keeps_text(self, parser):
        parsed = parser.parse("Mood: 5")
        assert parsed.values == {"Mood": "5"}

    def test_list_metric_collects_fragments(self, parser):
        parsed = parser.parse("Dream Themes: flying, water, Clarity: 3")
        assert parsed.values == {"Dream Themes": ["flying", "water"], "Clarity": 3}

    def test_value_split_at_first_colon(self, parser):
        parsed = parser.parse("Note: woke at 4:30")
        assert parsed.values == {"Note": "woke at 4:30"}

    def test_aggregate_is_appended(self, parser):
        aggregate = {}
        parser.parse("Clarity: 4, Dream Themes: flying, water", aggregate)
        parser.parse("Clarity: 2", aggregate)

        assert aggregate["Clarity"] == [4, 2]
        assert aggregate["Dream Themes"] == ["flying", "water"]

    def test_parse_entry_adds_words(self, parser):
        aggregate = {}
        parsed = parser.parse_entry("Clarity: 4", "I was flying over the city", aggregate)

        assert parsed.values == {"Clarity": 4, "Words": 6}
        assert aggregate["Words"] == [6]

    def test_parse_entry_words_for_empty_content(self, parser):
        parsed = parser.parse_entry("", "")
        assert parsed.values == {"Words": 0}

    def test_parse_entry_derived_metrics(self, parser):
        parsed = parser.parse_entry("", "calm peaceful sea", derived=True)

        assert parsed.values["Reading Time"] == 1
        assert parsed.values["Sentiment"] == 1.0
        assert parsed.values["Length Category"] == 1

    def test_idempotent_through_serialization(self, parser):
        first = parser.parse("Sensory Detail: 4, Emotional Recall: 3, Lost Segments: —, Mood: calm")
        second = parser.parse(serialize_metrics(first.values))

        assert second.values == first.values


class TestContentMetrics:
    """Test the derived content metrics"""

    def test_count_words(self):
        assert count_words("  one two\nthree  ") == 3
        assert count_words("") == 0

    def test_sentiment_bounds(self):
        assert sentiment_score("nothing special here") == 0.0
        assert sentiment_score("a terrible nightmare") == -1.0
        assert sentiment_score("happy but scared of the dark") == 0.0

    @pytest.mark.parametrize("words,category", [(0, 1), (99, 1), (100, 2), (499, 2), (500, 3), (1000, 4)])
    def test_length_category(self, words, category):
        assert length_category(words) == category

    def test_reading_time_rounds_up(self):
        assert content_metrics("word " * 201)["Reading Time"] == 2
