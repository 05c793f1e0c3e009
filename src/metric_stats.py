"""
Summary statistics over scrape results
"""

from collections import OrderedDict
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional

from models import DreamEntry, ValueKind, value_kind_of


@dataclass
class MetricSummary:
    count: int
    total: float
    average: Optional[float]
    min: Optional[float]
    max: Optional[float]
    non_numeric: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class TimeBucket:
    period: str
    entries: int
    words: int

    def to_dict(self) -> Dict:
        return asdict(self)


def summarize(aggregate: Dict[str, List]) -> Dict[str, MetricSummary]:
    """Count, total, average, min and max per metric; text values are only counted"""
    summaries = {}
    for name, values in aggregate.items():
        numbers = [v for v in values if value_kind_of(v) == ValueKind.NUMBER]
        total = float(sum(numbers))
        summaries[name] = MetricSummary(
            count=len(values),
            total=total,
            average=round(total / len(numbers), 2) if numbers else None,
            min=min(numbers) if numbers else None,
            max=max(numbers) if numbers else None,
            non_numeric=len(values) - len(numbers),
        )
    return summaries


def time_buckets(entries: Iterable[DreamEntry]) -> List[TimeBucket]:
    """Entry and word counts per month (YYYY-MM), oldest first"""
    buckets: Dict[str, TimeBucket] = OrderedDict()
    for entry in sorted(entries, key=lambda e: e.date):
        period = entry.date[:7]
        bucket = buckets.get(period)
        if bucket is None:
            bucket = buckets[period] = TimeBucket(period=period, entries=0, words=0)
        bucket.entries += 1
        bucket.words += entry.word_count
    return list(buckets.values())
