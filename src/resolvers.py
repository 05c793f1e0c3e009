"""
Date, title and block id resolution for dream entries.

Each resolver tries its strategies in order and the first one that
produces a value wins. None of them fail: the last strategy is always
a default.
"""

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from constants import UNTITLED_DREAM


BLOCK_REFERENCE_DATE = re.compile(r'\^(\d{8})')
LONG_DATE = re.compile(
    r'(?:Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday),\s+'
    r'(January|February|March|April|May|June|July|August|September|October|November|December)\s+'
    r'(\d{1,2})(?:st|nd|rd|th)?,\s+(\d{4})'
)
EIGHT_DIGITS = re.compile(r'^\s*(\d{8})\s*$')
PATH_YEAR = re.compile(r'\b(\d{4})\b')

DIARY_TITLE = re.compile(r'\[!dream-diary[^\]]*\](?:\s*\[\[.*?\]\])?\s*(.*?)(?:\s*\[\[|$)', re.IGNORECASE)
LINK_ALIAS = re.compile(r'\[\[[^\]]*?\|(.*?)\]\]')
DIARY_PLAIN_TEXT = re.compile(r'\[!dream-diary[^\]]*\](?:\s*\[\[.*?\]\])?\s*(.*)', re.IGNORECASE)
TITLE_BLOCK_REFERENCE = re.compile(r'\s*\^\w+\s*$')

MONTHS = [
    'January', 'February', 'March', 'April', 'May', 'June', 'July',
    'August', 'September', 'October', 'November', 'December',
]

MIN_YEAR = 1900
MAX_YEAR = 2100


class DateStrategy(Enum):
    BLOCK_REFERENCE = "block_reference"
    LONG_FORM = "long_form"
    FRONTMATTER_CREATED = "frontmatter_created"
    FRONTMATTER_MODIFIED = "frontmatter_modified"
    PATH_YEAR = "path_year"
    PROCESSING_DATE = "processing_date"


@dataclass(frozen=True)
class ResolvedDate:
    """
    A resolved entry date.

    value is always YYYY-MM-DD. When only a year could be found
    (path fallback) the date is January 1st of that year and year_only
    is set so callers can tell it apart from a real date.
    """
    value: str
    strategy: DateStrategy
    year_only: bool = False


def _date_from_digits(digits: str) -> Optional[str]:
    try:
        parsed = date(int(digits[:4]), int(digits[4:6]), int(digits[6:8]))
    except ValueError:
        return None
    if not MIN_YEAR <= parsed.year <= MAX_YEAR:
        return None
    return parsed.isoformat()


def _date_from_property(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    match = EIGHT_DIGITS.match(str(value))
    if not match:
        return None
    return _date_from_digits(match.group(1))


def _date_from_long_form(line: str) -> Optional[str]:
    match = LONG_DATE.search(line)
    if not match:
        return None
    month_name, day, year = match.groups()
    try:
        parsed = date(int(year), MONTHS.index(month_name) + 1, int(day))
    except ValueError:
        return None
    return parsed.isoformat()


def resolve_date(
    header_lines: List[str],
    properties: Optional[Dict[str, Any]] = None,
    document_path: str = "",
    today: Optional[date] = None,
) -> ResolvedDate:
    """
    Resolve the date of a journal entry.

    Args:
        header_lines: The journal callout line and the line after it
        properties: Front matter of the document
        document_path: Path of the document in the store
        today: Processing date used as the final fallback
    """
    properties = properties or {}

    for line in header_lines[:2]:
        match = BLOCK_REFERENCE_DATE.search(line or "")
        if match:
            value = _date_from_digits(match.group(1))
            if value:
                return ResolvedDate(value, DateStrategy.BLOCK_REFERENCE)

    if header_lines:
        value = _date_from_long_form(header_lines[0] or "")
        if value:
            return ResolvedDate(value, DateStrategy.LONG_FORM)

    value = _date_from_property(properties.get('created'))
    if value:
        return ResolvedDate(value, DateStrategy.FRONTMATTER_CREATED)

    value = _date_from_property(properties.get('modified'))
    if value:
        return ResolvedDate(value, DateStrategy.FRONTMATTER_MODIFIED)

    for match in PATH_YEAR.finditer(document_path or ""):
        year = int(match.group(1))
        if MIN_YEAR <= year <= MAX_YEAR:
            return ResolvedDate(f"{year:04d}-01-01", DateStrategy.PATH_YEAR, year_only=True)

    today = today or date.today()
    return ResolvedDate(today.isoformat(), DateStrategy.PROCESSING_DATE)


def _strip_block_reference(title: str) -> str:
    return TITLE_BLOCK_REFERENCE.sub('', title).strip()


def resolve_title(diary_header: str) -> str:
    """Title of a dream diary from its callout line"""
    match = DIARY_TITLE.search(diary_header)
    if match:
        title = _strip_block_reference(match.group(1).strip())
        if title:
            return title

    match = LINK_ALIAS.search(diary_header)
    if match:
        title = match.group(1).strip()
        if title:
            return title

    match = DIARY_PLAIN_TEXT.search(diary_header)
    if match:
        title = _strip_block_reference(match.group(1).strip())
        if title:
            return title

    return UNTITLED_DREAM


def resolve_block_id(diary_header: str) -> Optional[str]:
    """8-digit block reference on the diary line, if any"""
    match = BLOCK_REFERENCE_DATE.search(diary_header)
    return match.group(1) if match else None
