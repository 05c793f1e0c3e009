"""
Document store for OneiroMetrics.

The scrape engine only needs three operations from the place where
journal documents live: read, list and write. DocumentStore is that
interface; FileSystemStore serves a folder of markdown files.
"""

import asyncio
import fnmatch
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Union

from models import DocumentReadError
from logging_setup import LogCategory, get_logger


logger = get_logger(__name__)


class DocumentStore(ABC):
    """Async access to journal documents by store-relative path"""

    @abstractmethod
    async def read(self, path: str) -> str:
        """Full text of a document"""

    @abstractmethod
    async def list(
        self,
        folder: str,
        recursive: bool = True,
        excluded_notes: Iterable[str] = (),
        excluded_folders: Iterable[str] = (),
    ) -> List[str]:
        """Document paths under folder, in a stable order"""

    @abstractmethod
    async def write(self, path: str, text: str) -> bool:
        """Replace a document's text; True on success"""


def is_excluded(path: str, patterns: Iterable[str]) -> bool:
    """Exact path or glob match against exclusion patterns"""
    return any(path == pattern or fnmatch.fnmatch(path, pattern) for pattern in patterns)


def _normalize_folder(folder: str) -> str:
    return folder.strip().strip('/')


class FileSystemStore(DocumentStore):
    """Markdown files under a root directory"""

    EXTENSION = ".md"

    def __init__(self, root: Union[str, Path] = "."):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        resolved = (self.root / path).resolve()
        root = self.root.resolve()
        if resolved != root and root not in resolved.parents:
            raise DocumentReadError(path, ValueError("path escapes the store root"))
        return resolved

    async def read(self, path: str) -> str:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentReadError(path, e) from e

    async def list(
        self,
        folder: str,
        recursive: bool = True,
        excluded_notes: Iterable[str] = (),
        excluded_folders: Iterable[str] = (),
    ) -> List[str]:
        excluded_notes = list(excluded_notes)
        excluded_folders = [_normalize_folder(f) for f in excluded_folders]
        return await asyncio.to_thread(
            self._walk, _normalize_folder(folder), recursive, excluded_notes, excluded_folders
        )

    def _walk(
        self,
        folder: str,
        recursive: bool,
        excluded_notes: List[str],
        excluded_folders: List[str],
    ) -> List[str]:
        try:
            start = self._resolve(folder) if folder else self.root.resolve()
        except DocumentReadError:
            logger.error(f"{LogCategory.FILE_IO} Selected folder is outside the store root: {folder}")
            return []
        if not start.is_dir():
            logger.error(f"{LogCategory.FILE_IO} Selected folder not found: {folder}")
            return []

        root = self.root.resolve()
        found: List[str] = []
        pending = [start]

        while pending:
            current = pending.pop(0)
            subfolders = []
            for child in sorted(current.iterdir()):
                relative = child.relative_to(root).as_posix()
                if child.is_dir():
                    if is_excluded(relative, excluded_folders):
                        logger.debug(f"{LogCategory.FILE_IO} Skipping excluded folder {relative}")
                        continue
                    if recursive:
                        subfolders.append(child)
                elif child.suffix == self.EXTENSION:
                    if is_excluded(relative, excluded_notes):
                        logger.debug(f"{LogCategory.FILE_IO} Skipping excluded note {relative}")
                        continue
                    found.append(relative)
            pending = subfolders + pending

        return found

    async def write(self, path: str, text: str) -> bool:
        try:
            target = self._resolve(path)
            await asyncio.to_thread(target.write_text, text, encoding="utf-8")
        except (DocumentReadError, OSError) as e:
            logger.error(f"{LogCategory.FILE_IO} Failed to write {path}: {e}")
            return False
        return True


class MemoryStore(DocumentStore):
    """Documents held in a dict, for tests and embedding"""

    def __init__(self, documents=None):
        self.documents = dict(documents or {})

    async def read(self, path: str) -> str:
        if path not in self.documents:
            raise DocumentReadError(path, KeyError(path))
        return self.documents[path]

    async def list(
        self,
        folder: str,
        recursive: bool = True,
        excluded_notes: Iterable[str] = (),
        excluded_folders: Iterable[str] = (),
    ) -> List[str]:
        prefix = _normalize_folder(folder)
        excluded_notes = list(excluded_notes)
        excluded_folders = [_normalize_folder(f) for f in excluded_folders]

        paths = []
        for path in sorted(self.documents):
            if prefix and not path.startswith(prefix + '/'):
                continue
            relative = path[len(prefix) + 1:] if prefix else path
            if not recursive and '/' in relative:
                continue
            if is_excluded(path, excluded_notes):
                continue
            if any(path.startswith(f + '/') or is_excluded(path.rsplit('/', 1)[0], [f])
                   for f in excluded_folders if f):
                continue
            paths.append(path)
        return paths

    async def write(self, path: str, text: str) -> bool:
        self.documents[path] = text
        return True
