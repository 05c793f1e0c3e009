"""
Batch orchestration for OneiroMetrics scrape runs.

Documents are read and processed in fixed-size batches. Within a batch
every document is its own task; results are merged into the run as
each task finishes, so entries arrive in completion order. A document
that fails is logged and recorded, and the batch carries on.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from constants import DEFAULT_BATCH_SIZE, DEFAULT_CONFLICT_STRATEGY
from config_manager import SelectionConfig
from document_store import DocumentStore
from journal_processor import DocumentProcessor, DocumentResult
from metrics_parser import MetricsAggregate
from models import (
    DocumentReadError,
    DreamEntry,
    MetricConfig,
    MetricConflict,
    NoDocumentsSelectedError,
)
from logging_setup import LogCategory, get_logger


@dataclass
class ScrapeContext:
    """State for one scrape run, passed to every component that needs it"""
    metric_configs: List[MetricConfig]
    logger: logging.Logger = field(default_factory=get_logger)
    processing_date: date = field(default_factory=date.today)
    batch_size: int = DEFAULT_BATCH_SIZE
    frontmatter_enabled: bool = True
    conflict_strategy: str = DEFAULT_CONFLICT_STRATEGY
    auto_detect: bool = True
    derived_metrics: bool = False
    warn_on_conflicts: bool = True
    aggregate: MetricsAggregate = field(default_factory=dict)

    @classmethod
    def from_config(cls, config, logger: Optional[logging.Logger] = None, **overrides) -> "ScrapeContext":
        """Build a context from a ConfigManager"""
        values = dict(
            metric_configs=config.get_metric_configs(),
            logger=logger or get_logger(),
            batch_size=config.get('scrape.batch_size', DEFAULT_BATCH_SIZE),
            frontmatter_enabled=config.get('frontmatter.enabled', True),
            conflict_strategy=config.get('frontmatter.conflict_resolution', DEFAULT_CONFLICT_STRATEGY),
            auto_detect=config.get('frontmatter.auto_detect_type', True),
            derived_metrics=config.get('metrics.derived_metrics', False),
            warn_on_conflicts=config.get('frontmatter.warn_on_conflicts', True),
        )
        values.update(overrides)
        return cls(**values)

    def create_processor(self) -> DocumentProcessor:
        return DocumentProcessor(
            self.metric_configs,
            frontmatter_enabled=self.frontmatter_enabled,
            conflict_strategy=self.conflict_strategy,
            auto_detect=self.auto_detect,
            derived_metrics=self.derived_metrics,
            processing_date=self.processing_date,
            logger=self.logger,
            warn_on_conflicts=self.warn_on_conflicts,
        )


@dataclass
class ScrapeResult:
    metrics: MetricsAggregate = field(default_factory=dict)
    entries: List[DreamEntry] = field(default_factory=list)
    conflicts: List[MetricConflict] = field(default_factory=list)
    failed_documents: Dict[str, str] = field(default_factory=dict)
    warnings: Dict[str, List[str]] = field(default_factory=dict)
    documents_processed: int = 0

    @property
    def entries_found(self) -> int:
        return len(self.entries)

    @property
    def conflicts_found(self) -> int:
        return len(self.conflicts)

    def sorted_entries(self) -> List[DreamEntry]:
        """Entries in document order (stable sort by source path)"""
        return sorted(self.entries, key=lambda entry: entry.source.document_id)

    def tally(self) -> Dict[str, int]:
        return {
            "documents_processed": self.documents_processed,
            "entries_found": self.entries_found,
            "conflicts_found": self.conflicts_found,
            "documents_failed": len(self.failed_documents),
        }

    def to_dict(self, sort: bool = False) -> Dict[str, Any]:
        entries = self.sorted_entries() if sort else self.entries
        return {
            "tally": self.tally(),
            "metrics": {name: list(values) for name, values in self.metrics.items()},
            "entries": [entry.to_dict() for entry in entries],
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
            "failed_documents": dict(self.failed_documents),
            "warnings": {path: list(items) for path, items in self.warnings.items()},
        }


class ScrapeOrchestrator:
    """
    Run the scrape pipeline over the documents a selection names.

    Usage:
        context = ScrapeContext(metric_configs)
        result = asyncio.run(ScrapeOrchestrator(store, context).run(selection))
    """

    def __init__(self, store: DocumentStore, context: ScrapeContext):
        self.store = store
        self.context = context
        self.logger = context.logger
        self.processor = context.create_processor()

    async def select_documents(self, selection: SelectionConfig) -> List[str]:
        """Paths to scrape; raises NoDocumentsSelectedError when there are none"""
        if selection.is_folder_mode:
            if not selection.folder:
                raise NoDocumentsSelectedError("No folder selected for a folder scrape")
            paths = await self.store.list(
                selection.folder,
                recursive=True,
                excluded_notes=selection.excluded_notes,
                excluded_folders=selection.excluded_folders,
            )
        else:
            paths = [p for p in dict.fromkeys(selection.notes) if p not in selection.excluded_notes]

        if not paths:
            raise NoDocumentsSelectedError(
                f"No documents selected (mode: {selection.mode})"
            )

        if selection.max_files and len(paths) > selection.max_files:
            self.logger.warning(
                f"{LogCategory.SCRAPE} {len(paths)} documents selected, "
                f"processing the first {selection.max_files}"
            )
            paths = paths[:selection.max_files]

        return paths

    async def run(self, selection: SelectionConfig) -> ScrapeResult:
        paths = await self.select_documents(selection)
        return await self.run_paths(paths)

    async def run_paths(self, paths: List[str]) -> ScrapeResult:
        if not paths:
            raise NoDocumentsSelectedError("No documents selected")

        result = ScrapeResult()
        self.context.aggregate = result.metrics
        batch_size = max(1, int(self.context.batch_size))

        self.logger.info(f"{LogCategory.SCRAPE} Scraping {len(paths)} documents in batches of {batch_size}")

        for start in range(0, len(paths), batch_size):
            batch = paths[start:start + batch_size]
            tasks = [asyncio.create_task(self._process_document(path)) for path in batch]

            for finished in asyncio.as_completed(tasks):
                path, outcome = await finished
                if isinstance(outcome, DocumentResult):
                    self._merge(result, outcome)
                else:
                    result.failed_documents[path] = str(outcome)

        self.logger.info(
            f"{LogCategory.SCRAPE} Done: {result.documents_processed} documents, "
            f"{result.entries_found} entries, {result.conflicts_found} conflicts, "
            f"{len(result.failed_documents)} failed"
        )
        return result

    async def _process_document(self, path: str):
        """Read and process one document; failures are returned, not raised"""
        try:
            text = await self.store.read(path)
        except DocumentReadError as e:
            self.logger.error(f"{LogCategory.FILE_IO} {e}")
            return path, e
        except Exception as e:
            self.logger.error(f"{LogCategory.FILE_IO} Could not read document {path}: {e}")
            return path, DocumentReadError(path, e)

        try:
            return path, self.processor.process(path, text)
        except Exception as e:
            self.logger.exception(f"{LogCategory.SCRAPE} Failed to process {path}: {e}")
            return path, e

    def _merge(self, result: ScrapeResult, document: DocumentResult):
        result.documents_processed += 1
        result.entries.extend(document.entries)
        result.conflicts.extend(document.conflicts)
        for name, values in document.metrics.items():
            result.metrics.setdefault(name, []).extend(values)
        if document.warnings:
            result.warnings[document.document_id] = list(document.warnings)
