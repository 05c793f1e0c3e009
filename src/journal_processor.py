"""
Per-document entry derivation for OneiroMetrics.

One document in, dream entries out:

    text -> front matter + block tree
         -> per attached dream-diary: date, title, block id, metrics
         -> reconcile with front matter metrics
         -> DreamEntry

Everything here is synchronous and never touches the document store.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from constants import DEFAULT_CONFLICT_STRATEGY
from callout_parser import build_block_tree, clean_content, iter_blocks
from frontmatter import FrontmatterParser, FrontmatterMetricSource
from metrics_parser import MetricsAggregate, MetricsTextParser, metrics_text
from models import (
    CalloutBlock,
    CalloutKind,
    CalloutMetadata,
    DreamEntry,
    EntrySource,
    ExtractedMetrics,
    MetricConfig,
    MetricConflict,
    MetricSource,
)
from reconciler import MetricsReconciler
from resolvers import resolve_block_id, resolve_date, resolve_title
from logging_setup import LogCategory, get_logger


ENTRY_TYPE = "dream"


@dataclass
class DocumentResult:
    """Everything one document contributed to a run"""
    document_id: str
    entries: List[DreamEntry] = field(default_factory=list)
    conflicts: List[MetricConflict] = field(default_factory=list)
    metrics: MetricsAggregate = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)


class DocumentProcessor:
    """
    Derive DreamEntry records from a journal document.

    A dream-diary block yields an entry when it is attached to a journal
    entry and has a metrics block or some content. Unattached diaries
    and metrics blocks only contribute warnings.
    """

    def __init__(
        self,
        metric_configs: List[MetricConfig],
        frontmatter_enabled: bool = True,
        conflict_strategy: str = DEFAULT_CONFLICT_STRATEGY,
        auto_detect: bool = True,
        derived_metrics: bool = False,
        processing_date: Optional[date] = None,
        logger: Optional[logging.Logger] = None,
        warn_on_conflicts: bool = True,
    ):
        self.metric_configs = metric_configs
        self.frontmatter_enabled = frontmatter_enabled
        self.derived_metrics = derived_metrics
        self.processing_date = processing_date
        self.logger = logger or get_logger(__name__)

        self.metrics_parser = MetricsTextParser(metric_configs, self.logger)
        self.frontmatter_parser = FrontmatterParser(self.logger)
        self.frontmatter_source = FrontmatterMetricSource(
            metric_configs,
            auto_detect=auto_detect,
            parser=self.frontmatter_parser,
            logger=self.logger,
        )
        self.reconciler = MetricsReconciler(
            metric_configs, conflict_strategy, self.logger, warn_on_conflicts=warn_on_conflicts
        )

    def process(self, document_id: str, text: str) -> DocumentResult:
        result = DocumentResult(document_id=document_id)

        parsed = self.frontmatter_parser.parse(text)
        result.properties = parsed.data
        if not parsed.success:
            result.warnings.extend(f"Front matter: {error}" for error in parsed.errors)

        if self.frontmatter_enabled and parsed.success:
            frontmatter_metrics = self.frontmatter_source.extract(parsed.data)
        else:
            frontmatter_metrics = ExtractedMetrics(source=MetricSource.FRONTMATTER)

        lines = text.splitlines()
        blocks = build_block_tree(text, self.logger)

        for block in iter_blocks(blocks):
            result.warnings.extend(block.warnings)
            if block.kind != CalloutKind.JOURNAL_ENTRY:
                continue
            for diary in block.children_of_kind(CalloutKind.DREAM_DIARY):
                entry = self._build_entry(
                    document_id, lines, block, diary, parsed.data, frontmatter_metrics, result
                )
                if entry is not None:
                    result.entries.append(entry)

        self.logger.debug(
            f"{LogCategory.PARSER} {document_id}: {len(result.entries)} entries, "
            f"{len(result.conflicts)} conflicts, {len(result.warnings)} warnings"
        )
        return result

    def _build_entry(
        self,
        document_id: str,
        lines: List[str],
        journal: CalloutBlock,
        diary: CalloutBlock,
        properties: Dict[str, Any],
        frontmatter_metrics: ExtractedMetrics,
        result: DocumentResult,
    ) -> Optional[DreamEntry]:
        metrics_blocks = diary.children_of_kind(CalloutKind.METRICS_BLOCK)
        content = clean_content(diary.raw_lines)

        if not metrics_blocks and not content:
            self.logger.debug(
                f"{LogCategory.PARSER} Skipping empty dream-diary at line "
                f"{diary.first_line_index + 1} of {document_id}"
            )
            return None

        text = ' '.join(
            metrics_text([block.header] + block.raw_lines) for block in metrics_blocks
        ).strip()

        header_index = journal.first_line_index
        header_lines = lines[header_index:header_index + 2]
        resolved = resolve_date(header_lines, properties, document_id, self.processing_date)
        title = resolve_title(diary.header)
        block_id = resolve_block_id(diary.header)

        parsed = self.metrics_parser.parse_entry(
            text, content, result.metrics, derived=self.derived_metrics
        )
        callout_metrics = ExtractedMetrics(values=dict(parsed.values), source=MetricSource.CALLOUT)
        reconciled = self.reconciler.reconcile(frontmatter_metrics, callout_metrics, document_id)
        result.conflicts.extend(reconciled.conflicts)

        warnings = list(diary.warnings)
        if resolved.year_only:
            warnings.append(f"Only the year could be resolved for this entry ({resolved.value[:4]})")

        return DreamEntry(
            date=resolved.value,
            title=title,
            content=content,
            source=EntrySource(document_id=document_id, block_id=block_id),
            word_count=len(content.split()),
            metrics=dict(reconciled.metrics.values),
            callout_metadata=CalloutMetadata(type=ENTRY_TYPE, id=block_id, warnings=tuple(warnings)),
            metrics_source=reconciled.metrics.source,
            has_conflicts=reconciled.has_conflicts,
            unknown_metrics=tuple(parsed.unknown),
        )
