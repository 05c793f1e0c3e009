"""
Tests for batch orchestration of scrape runs
"""

import asyncio
import logging
import pytest
from pathlib import Path
from unittest.mock import patch

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from config_manager import ConfigManager, SelectionConfig
from document_store import MemoryStore
from models import DocumentReadError, NoDocumentsSelectedError
from orchestrator import ScrapeContext, ScrapeOrchestrator


def diary_document(day: int, clarity: int) -> str:
    return (
        "> [!journal-entry]\n"
        f"> [!dream-diary] Dream {day} ^202506{day:02d}\n"
        "> A short dream.\n"
        "> > [!dream-metrics]\n"
        f"> > Clarity: {clarity}\n"
    )


class FailingStore(MemoryStore):
    """Memory store whose reads fail for selected paths"""

    def __init__(self, documents, failing=(), delays=None):
        super().__init__(documents)
        self.failing = set(failing)
        self.delays = delays or {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def read(self, path):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(path, 0))
            if path in self.failing:
                raise OSError(f"disk error on {path}")
            return await super().read(path)
        finally:
            self.in_flight -= 1


@pytest.fixture
def context(metric_configs, processing_date):
    return ScrapeContext(metric_configs=metric_configs, processing_date=processing_date)


class TestScrapeOrchestrator:
    """Test scrape runs over a document store"""

    def test_batch_isolation(self, context):
        documents = {f"doc{i}.md": diary_document(i, i) for i in range(1, 6)}
        store = FailingStore(documents, failing={"doc3.md"})

        result = asyncio.run(ScrapeOrchestrator(store, context).run_paths(sorted(documents)))

        sources = sorted(e.source.document_id for e in result.entries)
        assert sources == ["doc1.md", "doc2.md", "doc4.md", "doc5.md"]
        assert list(result.failed_documents) == ["doc3.md"]
        assert "disk error" in result.failed_documents["doc3.md"]
        assert result.documents_processed == 4
        assert sorted(result.metrics["Clarity"]) == [1, 2, 4, 5]

    def test_processing_failure_isolated(self, context):
        documents = {f"doc{i}.md": diary_document(i, i) for i in range(1, 4)}
        orchestrator = ScrapeOrchestrator(MemoryStore(documents), context)
        original = orchestrator.processor.process

        def explode_on_two(document_id, text):
            if document_id == "doc2.md":
                raise RuntimeError("parser bug")
            return original(document_id, text)

        with patch.object(orchestrator.processor, "process", side_effect=explode_on_two):
            result = asyncio.run(orchestrator.run_paths(sorted(documents)))

        assert result.entries_found == 2
        assert "parser bug" in result.failed_documents["doc2.md"]

    def test_entries_arrive_in_completion_order(self, context):
        documents = {f"doc{i}.md": diary_document(i, i) for i in range(1, 4)}
        store = FailingStore(documents, delays={"doc1.md": 0.05, "doc2.md": 0.0, "doc3.md": 0.02})

        result = asyncio.run(ScrapeOrchestrator(store, context).run_paths(sorted(documents)))

        assert [e.source.document_id for e in result.entries] == ["doc2.md", "doc3.md", "doc1.md"]
        assert [e.source.document_id for e in result.sorted_entries()] == ["doc1.md", "doc2.md", "doc3.md"]

    def test_batches_bound_open_reads(self, metric_configs):
        documents = {f"doc{i:02d}.md": diary_document(i, 3) for i in range(1, 13)}
        store = FailingStore(documents, delays={p: 0.01 for p in documents})
        context = ScrapeContext(metric_configs=metric_configs, batch_size=5)

        result = asyncio.run(ScrapeOrchestrator(store, context).run_paths(sorted(documents)))

        assert store.max_in_flight <= 5
        assert result.entries_found == 12

    def test_aggregate_accumulates_across_documents(self, context, memory_store):
        selection = SelectionConfig(mode="folder", folder="Journal/2025")
        result = asyncio.run(ScrapeOrchestrator(memory_store, context).run(selection))

        assert result.documents_processed == 3
        assert result.entries_found == 3
        assert sorted(result.metrics["Clarity"]) == [1, 2, 4]

    def test_each_run_starts_with_empty_aggregate(self, context):
        store = MemoryStore({"a.md": diary_document(1, 4)})
        orchestrator = ScrapeOrchestrator(store, context)

        first = asyncio.run(orchestrator.run_paths(["a.md"]))
        second = asyncio.run(orchestrator.run_paths(["a.md"]))

        assert first.metrics["Clarity"] == [4]
        assert second.metrics["Clarity"] == [4]
        assert second.entries_found == 1
        assert context.aggregate is second.metrics

    def test_to_dict(self, context, memory_store):
        selection = SelectionConfig(mode="notes", notes=["Journal/2025/flight.md"])
        data = asyncio.run(ScrapeOrchestrator(memory_store, context).run(selection)).to_dict()

        assert data["tally"] == {
            "documents_processed": 1,
            "entries_found": 1,
            "conflicts_found": 0,
            "documents_failed": 0,
        }
        assert data["entries"][0]["title"] == "My Flight"
        assert data["metrics"]["Vividness"] == [5]


class TestDocumentSelection:
    """Test selection of documents before a run"""

    @pytest.fixture
    def orchestrator(self, context, memory_store):
        return ScrapeOrchestrator(memory_store, context)

    def test_no_notes_selected(self, orchestrator):
        with pytest.raises(NoDocumentsSelectedError):
            asyncio.run(orchestrator.run(SelectionConfig(mode="notes")))

    def test_no_folder_selected(self, orchestrator):
        with pytest.raises(NoDocumentsSelectedError):
            asyncio.run(orchestrator.run(SelectionConfig(mode="folder")))

    def test_empty_folder(self, orchestrator):
        with pytest.raises(NoDocumentsSelectedError):
            asyncio.run(orchestrator.run(SelectionConfig(mode="folder", folder="Nowhere")))

    def test_no_reads_before_selection_error(self, context):
        store = FailingStore({"a.md": "text"})
        with pytest.raises(NoDocumentsSelectedError):
            asyncio.run(ScrapeOrchestrator(store, context).run_paths([]))
        assert store.max_in_flight == 0

    def test_notes_exclusions_and_duplicates(self, orchestrator):
        selection = SelectionConfig(
            notes=["a.md", "b.md", "a.md", "c.md"],
            excluded_notes=["b.md"],
        )
        assert asyncio.run(orchestrator.select_documents(selection)) == ["a.md", "c.md"]

    def test_max_files_cap(self, orchestrator):
        notes = [f"n{i}.md" for i in range(10)]

        capped = asyncio.run(orchestrator.select_documents(SelectionConfig(notes=notes, max_files=3)))
        assert capped == notes[:3]

        unlimited = asyncio.run(orchestrator.select_documents(SelectionConfig(notes=notes, max_files=0)))
        assert unlimited == notes

    def test_legacy_modes(self):
        assert SelectionConfig(mode="manual").mode == "notes"
        assert SelectionConfig(mode="automatic").mode == "folder"
        with pytest.raises(ValueError):
            SelectionConfig(mode="everything")

    def test_missing_note_is_a_failed_document(self, orchestrator):
        selection = SelectionConfig(notes=["Journal/2025/flight.md", "gone.md"])
        result = asyncio.run(orchestrator.run(selection))

        assert result.entries_found == 1
        assert "gone.md" in result.failed_documents


class TestScrapeContext:
    """Test building a run context from configuration"""

    def test_from_config(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(
            '{"scrape": {"batch_size": 2}, "frontmatter": {"conflict_resolution": "callout"}}'
        )
        context = ScrapeContext.from_config(ConfigManager(str(config_path)))

        assert context.batch_size == 2
        assert context.conflict_strategy == "callout"
        assert context.frontmatter_enabled is True
        assert context.warn_on_conflicts is True
        assert any(c.name == "Sensory Detail" for c in context.metric_configs)

    def test_warn_on_conflicts_reaches_reconciler(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text('{"frontmatter": {"warn_on_conflicts": false}}')
        context = ScrapeContext.from_config(ConfigManager(str(config_path)))

        assert context.warn_on_conflicts is False
        assert context.create_processor().reconciler.conflict_log_level == logging.DEBUG

    def test_invalid_strategy_fails_at_processor_creation(self, metric_configs):
        context = ScrapeContext(metric_configs=metric_configs, conflict_strategy="loudest")
        with pytest.raises(ValueError):
            context.create_processor()

    def test_read_error_wraps_store_exception(self, context):
        store = FailingStore({"x.md": "text"}, failing={"x.md"})
        orchestrator = ScrapeOrchestrator(store, context)

        path, outcome = asyncio.run(orchestrator._process_document("x.md"))

        assert path == "x.md"
        assert isinstance(outcome, DocumentReadError)
