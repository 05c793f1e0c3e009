"""
Callout block parsing for OneiroMetrics

Turns a journal document into a tree of callout blocks:

    > [!journal-entry] Monday, June 2, 2025
    > [!dream-diary] My Flight ^20250603
    > I was flying over the city...
    > > [!dream-metrics]
    > > Sensory Detail: 4, Lost Segments: 1

Journal entries hold dream diaries, dream diaries hold metrics blocks.
The tree is built with an explicit stack of open frames, one pass over
the lines, and never raises on malformed input.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from models import CalloutBlock, CalloutKind
from logging_setup import LogCategory, get_logger


QUOTE_PREFIX = re.compile(r'^\s*((?:>\s*)+)')
CALLOUT_MARKER = re.compile(r'^\s*(?:>\s*)+\[!([\w-]+)(?:\|([^\]]*))?\]', re.IGNORECASE)
BLOCK_REFERENCE = re.compile(r'\^(\w+)')

KNOWN_KINDS = {kind.value: kind for kind in CalloutKind if kind != CalloutKind.UNKNOWN}

# parent kind -> kinds it may contain
VALID_CHILDREN = {
    CalloutKind.JOURNAL_ENTRY: {CalloutKind.DREAM_DIARY},
    CalloutKind.DREAM_DIARY: {CalloutKind.METRICS_BLOCK},
    CalloutKind.METRICS_BLOCK: set(),
    CalloutKind.UNKNOWN: set(),
}


@dataclass
class _Frame:
    kind: CalloutKind
    level: int
    block: CalloutBlock


def quote_depth(line: str) -> int:
    """Number of leading quote markers ('>' or '> > >')"""
    match = QUOTE_PREFIX.match(line)
    if not match:
        return 0
    return match.group(1).count('>')


def callout_kind(line: str) -> Optional[CalloutKind]:
    """Kind of the callout opened on this line, or None for plain text"""
    match = CALLOUT_MARKER.match(line)
    if not match:
        return None
    return KNOWN_KINDS.get(match.group(1).lower(), CalloutKind.UNKNOWN)


def parse_callout_metadata(line: str) -> Dict[str, str]:
    """
    Parse metadata from a callout marker.

    Supports '[!dream-diary|key=value,other=value]' and a bare
    '[!journal-entry|20250513]' parameter (stored under 'param').
    A block id ('^abc123') anywhere on the line is stored under 'id'.
    """
    metadata: Dict[str, str] = {}
    match = CALLOUT_MARKER.match(line)
    if not match:
        return metadata

    metadata['type'] = match.group(1).lower()
    meta = match.group(2)
    if meta:
        for part in re.split(r'[|,]', meta):
            part = part.strip()
            if not part:
                continue
            if '=' in part:
                key, value = part.split('=', 1)
                metadata[key.strip()] = value.strip()
            else:
                metadata.setdefault('param', part)

    block_id = BLOCK_REFERENCE.search(line[match.end():])
    if block_id:
        metadata['id'] = block_id.group(1)

    return metadata


def strip_quote_markers(line: str) -> str:
    """Remove leading quote markers and surrounding whitespace"""
    return QUOTE_PREFIX.sub('', line, count=1).strip()


def clean_content(lines: List[str]) -> str:
    """Join block lines into one line of prose"""
    text = ' '.join(strip_quote_markers(line) for line in lines)
    return re.sub(r'\s+', ' ', text).strip()


def _accepts(parent: CalloutKind, child: CalloutKind) -> bool:
    return child in VALID_CHILDREN.get(parent, set())


def build_block_tree(text: str, logger: Optional[logging.Logger] = None) -> List[CalloutBlock]:
    """
    Parse document text into top-level callout blocks.

    Frames deeper than the current line are closed before the line is
    handled. A line at the same depth as the open frame continues that
    frame, except that a new callout closes same-depth frames which
    cannot contain it (a second diary closes the first one).

    Diary and metrics blocks with no compatible parent are kept as
    top-level blocks with attached=False so nothing is dropped.
    """
    logger = logger or get_logger(__name__)
    roots: List[CalloutBlock] = []
    stack: List[_Frame] = []

    for index, line in enumerate(text.splitlines()):
        depth = quote_depth(line)

        while stack and stack[-1].level > depth:
            stack.pop()

        kind = callout_kind(line)

        if kind is None:
            if stack:
                stack[-1].block.raw_lines.append(line)
            continue

        block = CalloutBlock(
            kind=kind,
            nesting_level=depth,
            first_line_index=index,
            header=line,
            metadata=parse_callout_metadata(line),
        )

        # Unrecognised callouts nest in whatever block is open and never become entries
        if kind == CalloutKind.UNKNOWN:
            if stack:
                stack[-1].block.children.append(block)
            else:
                roots.append(block)
            stack.append(_Frame(kind=kind, level=depth, block=block))
            continue

        while stack and stack[-1].level == depth and not _accepts(stack[-1].kind, kind):
            stack.pop()

        parent = stack[-1].block if stack else None

        if kind == CalloutKind.JOURNAL_ENTRY:
            roots.append(block)
        elif parent is not None and _accepts(parent.kind, kind):
            parent.children.append(block)
        else:
            block.attached = False
            block.warnings.append(
                f"{kind.value} callout on line {index + 1} has no enclosing "
                f"{'journal-entry' if kind == CalloutKind.DREAM_DIARY else 'dream-diary'}"
            )
            roots.append(block)
            logger.debug(f"{LogCategory.PARSER} Orphan {kind.value} block at line {index + 1}")

        stack.append(_Frame(kind=kind, level=depth, block=block))

    return roots


def iter_blocks(blocks: List[CalloutBlock]) -> Iterator[CalloutBlock]:
    """Depth-first walk over a block forest, parents before children"""
    pending = list(reversed(blocks))
    while pending:
        block = pending.pop()
        yield block
        pending.extend(reversed(block.children))


def describe_tree(blocks: List[CalloutBlock]) -> List[str]:
    """Indented one-line-per-block outline, used by the parse command"""
    lines = []
    pending = [(block, 0) for block in reversed(blocks)]
    while pending:
        block, indent = pending.pop()
        flag = "" if block.attached else " (unattached)"
        lines.append(
            f"{'  ' * indent}{block.kind.value} level={block.nesting_level} "
            f"line={block.first_line_index + 1} lines={len(block.raw_lines)}{flag}"
        )
        pending.extend((child, indent + 1) for child in reversed(block.children))
    return lines
