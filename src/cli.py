#!/usr/bin/env python3
"""
OneiroMetrics CLI
Scrape dream journal callouts and reconcile them with front matter
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from config_manager import ConfigManager, SelectionConfig
from callout_parser import build_block_tree, describe_tree
from document_store import FileSystemStore
from models import ExtractedMetrics, MetricSource, NoDocumentsSelectedError, OneiroMetricsError
from orchestrator import ScrapeContext, ScrapeOrchestrator, ScrapeResult
from metric_stats import summarize, time_buckets
from logging_setup import LogCategory, setup_logging


class OneiroMetricsCLI:
    """Command-line interface for OneiroMetrics"""

    def __init__(self, config_path: Optional[str] = None):
        self.config = ConfigManager(config_path)
        self.logger = setup_logging(
            level=self.config.get('logging.level', 'WARNING'),
            log_file=self.config.get('logging.log_file'),
            json_output=self.config.get('logging.json_output', False),
            disabled_categories=self.config.get('logging.disabled_categories', []),
        )

    def _selection(self, args) -> SelectionConfig:
        """Configured selection with command-line overrides applied"""
        selection = self.config.get_selection()

        if getattr(args, 'folder', None):
            selection.mode = 'folder'
            selection.folder = args.folder
        elif getattr(args, 'notes', None):
            selection.mode = 'notes'
            selection.notes = list(args.notes)

        max_files = getattr(args, 'max_files', None)
        if max_files is not None:
            selection.max_files = max_files

        return selection

    def _store(self, args) -> FileSystemStore:
        root = getattr(args, 'root', None) or self.config.get('scrape.root', '.')
        return FileSystemStore(root)

    def _run_scrape(self, args) -> ScrapeResult:
        context = ScrapeContext.from_config(self.config, logger=self.logger)
        orchestrator = ScrapeOrchestrator(self._store(args), context)
        try:
            return asyncio.run(orchestrator.run(self._selection(args)))
        except NoDocumentsSelectedError as e:
            print(f"Error: {e}")
            print("Select notes with --notes or a folder with --folder "
                  "(or set selection.notes / selection.folder in the config).")
            sys.exit(1)

    def cmd_scrape(self, args):
        """Scrape selected documents and print entries and metric summaries"""
        result = self._run_scrape(args)

        if args.json:
            print(json.dumps(result.to_dict(sort=args.sorted), indent=2, ensure_ascii=False))
            return

        entries = result.sorted_entries() if args.sorted else result.entries

        print("🌙 OneiroMetrics Scrape")
        print("=" * 50)
        print(f"Documents processed: {result.documents_processed}")
        print(f"Entries found:       {result.entries_found}")
        print(f"Conflicts found:     {result.conflicts_found}")
        if result.failed_documents:
            print(f"Failed documents:    {len(result.failed_documents)}")
            for path, error in result.failed_documents.items():
                print(f"  ✗ {path}: {error}")
        print()

        if entries:
            print("📓 Entries:")
            for entry in entries:
                metrics = ", ".join(f"{k}: {v}" for k, v in entry.metrics.items())
                flag = " ⚠️" if entry.has_conflicts else ""
                print(f"  {entry.date}  {entry.title}{flag}")
                print(f"     {metrics}")
            print()

        summaries = summarize(result.metrics)
        if summaries:
            print("📊 Metrics:")
            for name, summary in summaries.items():
                if summary.average is None:
                    print(f"  {name.ljust(20)}: {summary.count} values")
                    continue
                print(f"  {name.ljust(20)}: avg {summary.average}  "
                      f"min {summary.min}  max {summary.max}  (n={summary.count})")
            print()

        buckets = time_buckets(result.entries)
        if len(buckets) > 1:
            print("📅 By month:")
            for bucket in buckets:
                print(f"  {bucket.period}: {bucket.entries} entries, {bucket.words} words")

    def cmd_conflicts(self, args):
        """Show front matter / callout conflicts for selected documents"""
        result = self._run_scrape(args)

        if args.json:
            print(json.dumps([c.to_dict() for c in result.conflicts], indent=2, ensure_ascii=False))
            return

        if not result.conflicts:
            print("✓ No conflicts between front matter and callout metrics.")
            return

        print(f"⚠️  {result.conflicts_found} conflicts")
        print("=" * 50)
        for conflict in result.conflicts:
            print(f"[{conflict.severity.value.upper()}] {conflict.document_id}: {conflict.metric_name}")
            print(f"   front matter: {conflict.frontmatter_value!r}  "
                  f"callout: {conflict.callout_value!r}  "
                  f"→ {conflict.suggested_resolution.value}")

    def cmd_parse(self, args):
        """Show the callout block tree and entries of one document"""
        path = Path(args.file)
        if not path.exists():
            print(f"Error: File not found: {path}")
            sys.exit(1)

        text = path.read_text(encoding='utf-8')

        print(f"🌳 Block tree: {path}")
        print("=" * 50)
        for line in describe_tree(build_block_tree(text, self.logger)):
            print(line)
        print()

        context = ScrapeContext.from_config(self.config, logger=self.logger)
        document = context.create_processor().process(str(path), text)

        print(f"📓 Entries: {len(document.entries)}")
        for entry in document.entries:
            print(json.dumps(entry.to_dict(), indent=2, ensure_ascii=False))
        for warning in document.warnings:
            print(f"⚠️  {warning}")

    def cmd_sync_frontmatter(self, args):
        """Write a document's reconciled metrics back into its front matter"""
        path = Path(args.file)
        if not path.exists():
            print(f"Error: File not found: {path}")
            sys.exit(1)

        store = FileSystemStore(path.parent)
        context = ScrapeContext.from_config(self.config, logger=self.logger)
        processor = context.create_processor()

        async def sync() -> bool:
            document = processor.process(path.name, await store.read(path.name))
            if not document.entries:
                return False
            if len(document.entries) > 1:
                self.logger.warning(
                    f"{LogCategory.FRONTMATTER} {path.name} has {len(document.entries)} entries; "
                    f"syncing the first one"
                )
            metrics = ExtractedMetrics(values=dict(document.entries[0].metrics), source=MetricSource.BOTH)
            return await processor.frontmatter_source.update_document(store, path.name, metrics)

        if asyncio.run(sync()):
            print(f"✓ Front matter updated: {path}")
        else:
            print(f"Nothing written to {path} (no entries, no front matter metrics, or unreadable front matter)")
            sys.exit(1)

    def cmd_config(self, args):
        """Configure OneiroMetrics settings"""
        if args.action == 'get':
            value = self.config.get(args.key)
            print(f"{args.key} = {value}")

        elif args.action == 'set':
            # Try to parse value as JSON for complex types
            try:
                value = json.loads(args.value)
            except json.JSONDecodeError:
                value = args.value

            self.config.set(args.key, value)
            print(f"✓ Set {args.key} = {value}")

        elif args.action == 'list':
            print("Current Configuration:")
            print(json.dumps(self.config.config, indent=2, ensure_ascii=False))


def _add_selection_arguments(parser: argparse.ArgumentParser):
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--folder', help='Scrape every note under this folder')
    group.add_argument('--notes', nargs='+', help='Scrape these notes')
    parser.add_argument('--root', help='Vault root directory (default: scrape.root)')
    parser.add_argument('--max-files', type=int, help='Process at most this many notes (0 = unlimited)')
    parser.add_argument('--json', action='store_true', help='Print JSON instead of text')


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description='OneiroMetrics - dream journal metrics',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--config', help='Path to config file')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Scrape command
    scrape_parser = subparsers.add_parser(
        'scrape',
        help='Scrape dream entries and metrics from notes'
    )
    _add_selection_arguments(scrape_parser)
    scrape_parser.add_argument(
        '--sorted',
        action='store_true',
        help='Order entries by note path instead of completion order'
    )

    # Conflicts command
    conflicts_parser = subparsers.add_parser(
        'conflicts',
        help='Show front matter / callout metric conflicts'
    )
    _add_selection_arguments(conflicts_parser)

    # Parse command
    parse_parser = subparsers.add_parser(
        'parse',
        help='Show the callout tree and entries of one note'
    )
    parse_parser.add_argument('file', help='Markdown note')

    # Sync front matter command
    sync_parser = subparsers.add_parser(
        'sync-frontmatter',
        help='Write reconciled metrics into a note\'s front matter'
    )
    sync_parser.add_argument('file', help='Markdown note')

    # Config command
    config_parser = subparsers.add_parser(
        'config',
        help='Configure OneiroMetrics settings'
    )
    config_parser.add_argument(
        'action',
        choices=['get', 'set', 'list'],
        help='Config action'
    )
    config_parser.add_argument('key', nargs='?', help='Config key (dot notation)')
    config_parser.add_argument('value', nargs='?', help='Config value')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        cli = OneiroMetricsCLI(args.config)
    except (OneiroMetricsError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    # Dispatch commands
    command_map = {
        'scrape': cli.cmd_scrape,
        'conflicts': cli.cmd_conflicts,
        'parse': cli.cmd_parse,
        'sync-frontmatter': cli.cmd_sync_frontmatter,
        'config': cli.cmd_config
    }

    handler = command_map.get(args.command)
    if handler:
        try:
            handler(args)
        except (OneiroMetricsError, ValueError) as e:
            # Bad configuration values or a path outside the vault root
            print(f"Error: {e}")
            sys.exit(1)
    else:
        print(f"Unknown command: {args.command}")
        sys.exit(1)


if __name__ == '__main__':
    main()
