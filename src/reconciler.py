"""
Reconciliation of front matter and callout metrics.

Both sources can carry a value for the same metric. The reconciler
merges them into one record, reports every disagreement as a
MetricConflict and picks a value for it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from constants import (
    CONFLICT_STRATEGIES,
    UNIMPLEMENTED_STRATEGIES,
    DEFAULT_CONFLICT_STRATEGY,
    HIGH_SEVERITY_THRESHOLD,
    MEDIUM_SEVERITY_THRESHOLD,
)
from models import (
    ExtractedMetrics,
    MetricConfig,
    MetricConflict,
    MetricSource,
    MetricValue,
    Resolution,
    Severity,
    ValueKind,
    value_kind_of,
)
from logging_setup import LogCategory, get_logger


@dataclass
class ReconciliationResult:
    metrics: ExtractedMetrics
    conflicts: List[MetricConflict] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def values_equal(a: MetricValue, b: MetricValue) -> bool:
    """Scalar equality, or element-wise equality for sequences"""
    a_is_list = isinstance(a, (list, tuple))
    b_is_list = isinstance(b, (list, tuple))
    if a_is_list or b_is_list:
        if not (a_is_list and b_is_list) or len(a) != len(b):
            return False
        return all(x == y for x, y in zip(a, b))
    return a == b


def calculate_severity(frontmatter_value: MetricValue, callout_value: MetricValue) -> Severity:
    """
    Severity of a disagreement.

    Numeric pairs are graded by their difference relative to their mean:
    above 50% is high, above 20% medium. Any sequence is medium.
    """
    fm_kind = value_kind_of(frontmatter_value)
    co_kind = value_kind_of(callout_value)

    if fm_kind == ValueKind.NUMBER and co_kind == ValueKind.NUMBER:
        mean = (frontmatter_value + callout_value) / 2
        if mean != 0:
            relative = abs(frontmatter_value - callout_value) / abs(mean)
            if relative > HIGH_SEVERITY_THRESHOLD:
                return Severity.HIGH
            if relative > MEDIUM_SEVERITY_THRESHOLD:
                return Severity.MEDIUM

    if fm_kind == ValueKind.LIST or co_kind == ValueKind.LIST:
        return Severity.MEDIUM

    return Severity.LOW


class MetricsReconciler:
    """
    Merge front matter and callout metrics for one entry.

    Strategies:
    - "suggested": each conflict follows its suggested resolution,
      front matter when the metric declares a frontmatter_property (default)
    - "frontmatter" / "callout": always take that side
    - "newest" / "manual": accepted but not implemented; they take the
      front matter value and log a warning

    Each conflict is logged at WARNING, or at DEBUG when warn_on_conflicts
    is off.
    """

    def __init__(
        self,
        metric_configs: List[MetricConfig],
        strategy: str = DEFAULT_CONFLICT_STRATEGY,
        logger: Optional[logging.Logger] = None,
        warn_on_conflicts: bool = True,
    ):
        if strategy not in CONFLICT_STRATEGIES:
            raise ValueError(
                f"Unknown conflict resolution strategy: {strategy} "
                f"(expected one of {', '.join(CONFLICT_STRATEGIES)})"
            )
        self.strategy = strategy
        self.logger = logger or get_logger(__name__)
        self.conflict_log_level = logging.WARNING if warn_on_conflicts else logging.DEBUG
        self._configs: Dict[str, MetricConfig] = {c.name.lower(): c for c in metric_configs}
        self._warned_unimplemented = False

    def suggested_resolution(self, metric_name: str) -> Resolution:
        config = self._configs.get(metric_name.lower())
        if config is not None and config.frontmatter_property:
            return Resolution.FRONTMATTER
        return Resolution.CALLOUT

    def resolve_conflict(self, conflict: MetricConflict) -> MetricValue:
        """Value to keep for a conflicting metric"""
        if self.strategy == "suggested":
            side = conflict.suggested_resolution
        elif self.strategy == "callout":
            side = Resolution.CALLOUT
        elif self.strategy == "frontmatter":
            side = Resolution.FRONTMATTER
        elif self.strategy in UNIMPLEMENTED_STRATEGIES:
            if not self._warned_unimplemented:
                self.logger.warning(
                    f"{LogCategory.RECONCILE} Conflict strategy '{self.strategy}' is not "
                    f"implemented; using front matter values"
                )
                self._warned_unimplemented = True
            side = Resolution.FRONTMATTER

        if side == Resolution.FRONTMATTER:
            return conflict.frontmatter_value
        return conflict.callout_value

    def reconcile(
        self,
        frontmatter: ExtractedMetrics,
        callout: ExtractedMetrics,
        document_id: Optional[str] = None,
    ) -> ReconciliationResult:
        merged: Dict[str, MetricValue] = {}
        conflicts: List[MetricConflict] = []

        names = list(dict.fromkeys(frontmatter.metric_names() + callout.metric_names()))

        for name in names:
            in_fm = name in frontmatter.values
            in_callout = name in callout.values

            if in_fm and not in_callout:
                merged[name] = frontmatter.values[name]
                continue
            if in_callout and not in_fm:
                merged[name] = callout.values[name]
                continue

            fm_value = frontmatter.values[name]
            co_value = callout.values[name]

            if values_equal(fm_value, co_value):
                merged[name] = fm_value
                continue

            conflict = MetricConflict(
                metric_name=name,
                frontmatter_value=fm_value,
                callout_value=co_value,
                severity=calculate_severity(fm_value, co_value),
                suggested_resolution=self.suggested_resolution(name),
                document_id=document_id,
            )
            conflicts.append(conflict)
            merged[name] = self.resolve_conflict(conflict)

            self.logger.log(
                self.conflict_log_level,
                f"{LogCategory.RECONCILE} Conflict on {name} in {document_id or 'entry'}: "
                f"front matter={fm_value!r}, callout={co_value!r}, "
                f"severity={conflict.severity.value}"
            )

        if conflicts or (not frontmatter.is_empty() and not callout.is_empty()):
            source = MetricSource.BOTH
        elif not frontmatter.is_empty():
            source = MetricSource.FRONTMATTER
        elif not callout.is_empty():
            source = MetricSource.CALLOUT
        else:
            source = MetricSource.UNKNOWN

        return ReconciliationResult(
            metrics=ExtractedMetrics(
                values=merged,
                source=source,
                extracted_at=datetime.now().isoformat(),
            ),
            conflicts=conflicts,
        )
