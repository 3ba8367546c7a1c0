"""Per-file parse cache, filled lazily and invalidated by watcher events."""
from __future__ import annotations

import asyncio
import itertools
import logging
from pathlib import Path
from typing import Iterable, Mapping

from mdgraph.models import FileRecord
from mdgraph.observability import record_parse_failure
from mdgraph.parsers.documents import parse_document_file

logger = logging.getLogger("mdgraph.cache")


class ParseCache:
    """Maps absolute path -> FileRecord.

    Entries are only written on the event loop thread. File reads run in
    worker threads; each read takes a fresh generation from one shared
    counter, and its result is only stored if the path still carries that
    generation. ``invalidate`` drops the generation, so reads in flight for
    an edited or removed file are discarded and nothing is kept for paths
    that are gone.
    """

    def __init__(self, watch_root: Path, extension: str = ".md"):
        self.watch_root = watch_root
        self.extension = extension
        self._records: dict[Path, FileRecord] = {}
        self._generations: dict[Path, int] = {}
        self._inflight: dict[Path, asyncio.Task] = {}
        self._counter = itertools.count(1)

    def get(self, path: Path) -> FileRecord | None:
        return self._records.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def __len__(self) -> int:
        return len(self._records)

    @property
    def tracked(self) -> int:
        """Paths holding a record or a read in flight."""
        return len(self._generations)

    def invalidate(self, path: Path) -> None:
        """Drop any entry for ``path`` and orphan reads already in flight."""
        self._records.pop(path, None)
        self._generations.pop(path, None)
        self._inflight.pop(path, None)

    async def ensure(self, path: Path) -> FileRecord | None:
        """Parse ``path`` if it has no entry. Never raises on read failure."""
        record = self._records.get(path)
        if record is not None:
            return record

        task = self._inflight.get(path)
        if task is None:
            generation = next(self._counter)
            self._generations[path] = generation
            task = asyncio.ensure_future(self._load(path, generation))
            self._inflight[path] = task
        return await asyncio.shield(task)

    async def fill(self, paths: Iterable[Path]) -> int:
        """Ensure every path without an entry; returns once all reads finished."""
        missing = [path for path in paths if path not in self._records]
        if not missing:
            return 0
        logger.debug(f"Parsing {len(missing)} changed files")
        await asyncio.gather(*(self.ensure(path) for path in missing))
        return len(missing)

    def records(self, paths: Iterable[Path]) -> Mapping[Path, FileRecord]:
        """Copy of the entries for ``paths`` that are currently cached."""
        return {path: self._records[path] for path in paths if path in self._records}

    def _is_current(self, path: Path, generation: int) -> bool:
        return self._generations.get(path) == generation

    async def _load(self, path: Path, generation: int) -> FileRecord | None:
        try:
            record = await asyncio.to_thread(
                parse_document_file, path, self.watch_root, self.extension
            )
        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.error(f"Error processing {path}: {e}")
            record_parse_failure()
            if self._is_current(path, generation):
                self.invalidate(path)
            return None

        if not self._is_current(path, generation):
            logger.debug(f"Discarding stale parse of {path}")
            return None
        self._records[path] = record
        self._inflight.pop(path, None)
        return record
