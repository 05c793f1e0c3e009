"""
Data model for OneiroMetrics.

Callout blocks, dream entries, metric configuration and the two metric
records that the reconciler merges.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union


# Closed union of metric values: Number, Text, List-of-Text
MetricValue = Union[int, float, str, List[str]]


class OneiroMetricsError(Exception):
    """Base error for OneiroMetrics"""


class NoDocumentsSelectedError(OneiroMetricsError):
    """Raised once when a scrape run has nothing to read"""


class DocumentReadError(OneiroMetricsError):
    """A single document could not be read from the store"""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        message = f"Could not read document: {path}"
        if cause is not None:
            message = f"{message} ({cause})"
        super().__init__(message)


class CalloutKind(Enum):
    JOURNAL_ENTRY = "journal-entry"
    DREAM_DIARY = "dream-diary"
    METRICS_BLOCK = "dream-metrics"
    UNKNOWN = "unknown"


class ValueKind(Enum):
    NUMBER = "number"
    STRING = "string"
    LIST = "list"


class MetricSource(Enum):
    """Provenance of a metric record"""
    FRONTMATTER = "frontmatter"
    CALLOUT = "callout"
    BOTH = "both"
    UNKNOWN = "unknown"


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Resolution(Enum):
    FRONTMATTER = "frontmatter"
    CALLOUT = "callout"


def value_kind_of(value: MetricValue) -> ValueKind:
    """Classify a metric value into its kind"""
    if isinstance(value, bool):
        return ValueKind.STRING
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    return ValueKind.STRING


@dataclass
class CalloutBlock:
    """One callout block and the blocks nested inside it"""
    kind: CalloutKind
    nesting_level: int
    first_line_index: int
    header: str
    raw_lines: List[str] = field(default_factory=list)
    children: List["CalloutBlock"] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)
    attached: bool = True
    warnings: List[str] = field(default_factory=list)

    def children_of_kind(self, kind: CalloutKind) -> List["CalloutBlock"]:
        return [child for child in self.children if child.kind == kind]


@dataclass
class MetricConfig:
    """A metric in the configured vocabulary"""
    name: str
    enabled: bool = True
    frontmatter_property: Optional[str] = None
    value_kind: ValueKind = ValueKind.NUMBER
    category: str = "dream"
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetricConfig":
        kind = data.get("value_kind") or data.get("type") or "number"
        if kind in ("text", "tags"):
            kind = "list" if data.get("format") in ("list", "tags") else "string"
        try:
            value_kind = ValueKind(kind)
        except ValueError:
            value_kind = ValueKind.NUMBER

        return cls(
            name=data["name"],
            enabled=data.get("enabled", True),
            frontmatter_property=data.get("frontmatter_property") or None,
            value_kind=value_kind,
            category=data.get("category", "dream"),
            min_value=data.get("min_value"),
            max_value=data.get("max_value"),
            description=data.get("description", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["value_kind"] = self.value_kind.value
        return data


@dataclass
class ExtractedMetrics:
    """Metric values from one source, tagged with provenance"""
    values: Dict[str, MetricValue] = field(default_factory=dict)
    source: MetricSource = MetricSource.UNKNOWN
    extracted_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def metric_names(self) -> List[str]:
        """Names that are real metrics (reserved names start with '_')"""
        return [name for name in self.values if not name.startswith("_")]

    def is_empty(self) -> bool:
        return not self.metric_names()

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)


@dataclass
class MetricConflict:
    """Two sources disagree about one metric"""
    metric_name: str
    frontmatter_value: MetricValue
    callout_value: MetricValue
    severity: Severity
    suggested_resolution: Resolution
    document_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metric": self.metric_name,
            "frontmatter_value": self.frontmatter_value,
            "callout_value": self.callout_value,
            "severity": self.severity.value,
            "suggested_resolution": self.suggested_resolution.value,
            "document": self.document_id,
        }


@dataclass(frozen=True)
class EntrySource:
    document_id: str
    block_id: Optional[str] = None


@dataclass(frozen=True)
class CalloutMetadata:
    type: str
    id: Optional[str] = None
    warnings: tuple = ()


@dataclass(frozen=True)
class DreamEntry:
    """A dream journal entry with its reconciled metrics"""
    date: str
    title: str
    content: str
    source: EntrySource
    word_count: int
    metrics: Mapping[str, MetricValue]
    callout_metadata: CalloutMetadata
    metrics_source: MetricSource = MetricSource.CALLOUT
    has_conflicts: bool = False
    unknown_metrics: tuple = ()

    def __post_init__(self):
        # read-only copy, so the entry never shares a dict with the reconciler
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    def to_dict(self) -> Dict[str, Any]:
        metadata = {"type": self.callout_metadata.type, "id": self.callout_metadata.id}
        if self.callout_metadata.warnings:
            metadata["warnings"] = list(self.callout_metadata.warnings)

        return {
            "date": self.date,
            "title": self.title,
            "content": self.content,
            "source": {
                "document_id": self.source.document_id,
                "block_id": self.source.block_id,
            },
            "word_count": self.word_count,
            "metrics": dict(self.metrics),
            "callout_metadata": metadata,
            "metrics_source": self.metrics_source.value,
            "has_conflicts": self.has_conflicts,
            "unknown_metrics": list(self.unknown_metrics),
        }
