"""
Metrics text parsing for OneiroMetrics

Parses the inline text of a dream-metrics callout:

    Sensory Detail: 4, Emotional Recall: 3, Lost Segments: —

into a record of metric name -> value, matching names against the
configured metric vocabulary.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from constants import (
    NOT_RECORDED,
    WORDS_METRIC,
    READING_TIME_METRIC,
    SENTIMENT_METRIC,
    LENGTH_CATEGORY_METRIC,
    WORDS_PER_MINUTE,
)
from callout_parser import strip_quote_markers, CALLOUT_MARKER
from models import MetricConfig, MetricValue, ValueKind
from logging_setup import LogCategory, get_logger


NUMERIC = re.compile(r'^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$')
INTEGER = re.compile(r'^[+-]?\d+$')

# Placeholder word lists for the sentiment heuristic
POSITIVE_WORDS = {
    "happy", "joy", "love", "peaceful", "beautiful", "wonderful", "amazing",
    "good", "great", "excellent", "pleasant", "delight", "calm", "safe",
    "clarity", "flying", "float", "success", "achieve", "accomplish",
}
NEGATIVE_WORDS = {
    "sad", "fear", "anxious", "angry", "terrified", "nightmare", "falling",
    "chase", "dark", "scary", "bad", "awful", "terrible", "horror",
    "trapped", "confused", "lost", "danger", "threat", "panic", "death",
}

MetricsAggregate = Dict[str, List[MetricValue]]


@dataclass
class ParsedMetrics:
    """Metrics parsed from one callout, plus names outside the vocabulary"""
    values: Dict[str, MetricValue] = field(default_factory=dict)
    unknown: List[str] = field(default_factory=list)


def coerce_value(raw: str) -> MetricValue:
    """Number when the text is numeric, otherwise the trimmed text"""
    text = raw.strip()
    if NUMERIC.match(text):
        if INTEGER.match(text):
            return int(text)
        return float(text)
    return text


def count_words(content: str) -> int:
    return len(content.split())


def metrics_text(lines: List[str]) -> str:
    """
    Inline metrics text from the lines of a metrics block.

    Callout markers are removed; text written after a marker on the
    same line is kept.
    """
    parts = []
    for line in lines:
        marker = CALLOUT_MARKER.match(line)
        if marker:
            parts.append(line[marker.end():].strip())
        else:
            parts.append(strip_quote_markers(line))
    return re.sub(r'\s+', ' ', ' '.join(parts)).strip()


def _format_value(value: MetricValue) -> str:
    if isinstance(value, (list, tuple)):
        return ', '.join(str(item) for item in value)
    return str(value)


def serialize_metrics(values: Dict[str, MetricValue]) -> str:
    """Write a record back as 'Name: Value, Name: Value'"""
    return ', '.join(f"{name}: {_format_value(value)}" for name, value in values.items())


class MetricsTextParser:
    """
    Parse inline metrics against a metric vocabulary.

    Names are matched case-insensitively and replaced by the configured
    spelling. Names that match nothing are kept as written and reported
    in ParsedMetrics.unknown.
    """

    def __init__(self, metric_configs: List[MetricConfig], logger: Optional[logging.Logger] = None):
        self.metric_configs = metric_configs
        self.logger = logger or get_logger(__name__)
        self._by_lower = {config.name.lower(): config for config in metric_configs}

    def config_for(self, name: str) -> Optional[MetricConfig]:
        return self._by_lower.get(name.strip().lower())

    def canonical_name(self, name: str) -> str:
        config = self.config_for(name)
        return config.name if config else name.strip()

    def parse(self, text: str, aggregate: Optional[MetricsAggregate] = None) -> ParsedMetrics:
        """
        Parse a metrics string.

        Each parsed value is also appended to aggregate[name] when an
        aggregate is given. Pairs whose value is the em-dash placeholder
        are skipped. A fragment without a colon that follows a list
        metric is another item of that list.
        """
        parsed = ParsedMetrics()
        list_metric: Optional[str] = None

        for pair in text.split(','):
            pair = pair.strip()
            if not pair:
                continue

            if ':' not in pair:
                if list_metric is not None and pair != NOT_RECORDED:
                    parsed.values[list_metric].append(pair)
                continue

            raw_name, raw_value = pair.split(':', 1)
            raw_name = raw_name.strip()
            raw_value = raw_value.strip()
            list_metric = None

            if not raw_name or not raw_value or raw_value == NOT_RECORDED:
                continue

            config = self.config_for(raw_name)
            name = config.name if config else raw_name

            if config and config.value_kind == ValueKind.LIST:
                parsed.values[name] = [raw_value]
                list_metric = name
            elif config and config.value_kind == ValueKind.STRING:
                parsed.values[name] = raw_value
            else:
                parsed.values[name] = coerce_value(raw_value)

            if config is None and name not in parsed.unknown:
                parsed.unknown.append(name)

        if aggregate is not None:
            for name, value in parsed.values.items():
                bucket = aggregate.setdefault(name, [])
                if isinstance(value, list):
                    bucket.extend(value)
                else:
                    bucket.append(value)

        if parsed.unknown:
            self.logger.debug(
                f"{LogCategory.METRICS} Metrics outside the vocabulary: {', '.join(parsed.unknown)}"
            )

        return parsed

    def parse_entry(
        self,
        text: str,
        content: str,
        aggregate: Optional[MetricsAggregate] = None,
        derived: bool = False,
    ) -> ParsedMetrics:
        """Parse an entry's metrics text and add the Words metric for its content"""
        parsed = self.parse(text, aggregate)

        extra: Dict[str, MetricValue] = {WORDS_METRIC: count_words(content)}
        if derived:
            extra.update(content_metrics(content))

        for name, value in extra.items():
            parsed.values[name] = value
            if aggregate is not None:
                aggregate.setdefault(name, []).append(value)

        return parsed


def sentiment_score(content: str) -> float:
    """
    Word-list sentiment in [-1, 1].

    A placeholder heuristic, not language analysis.
    """
    words = re.findall(r"[a-z']+", content.lower())
    positive = sum(1 for word in words if word in POSITIVE_WORDS)
    negative = sum(1 for word in words if word in NEGATIVE_WORDS)
    if positive == 0 and negative == 0:
        return 0.0
    return round((positive - negative) / (positive + negative), 2)


def length_category(word_count: int) -> int:
    if word_count < 100:
        return 1
    if word_count < 500:
        return 2
    if word_count < 1000:
        return 3
    return 4


def content_metrics(content: str) -> Dict[str, MetricValue]:
    """Metrics computed from the dream text itself"""
    words = count_words(content)
    return {
        READING_TIME_METRIC: math.ceil(words / WORDS_PER_MINUTE),
        SENTIMENT_METRIC: sentiment_score(content),
        LENGTH_CATEGORY_METRIC: length_category(words),
    }
