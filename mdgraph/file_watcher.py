"""File watcher services using watchfiles.

``FileWatcher`` feeds document add/change/remove events into the graph
engine; ``SettingsWatcher`` reloads the palette and config sources.
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from watchfiles import Change, awatch

from mdgraph import config
from mdgraph.graph.engine import LinkGraphEngine
from mdgraph.settings import AppSettings, PaletteSource

logger = logging.getLogger("mdgraph.watcher")

# watchfiles batches changes for this long; the engine debounces again.
_WATCH_DEBOUNCE_MS = 50


def is_ignored(path: Path, root: Path) -> bool:
    """Hidden paths, dependency folders and project metadata files are skipped."""
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        return True
    for part in parts:
        if part.startswith(".") or part in config.IGNORED_DIRS:
            return True
    name = path.name
    if name in config.IGNORED_FILES:
        return True
    return name.startswith(config.IGNORED_FILE_PREFIXES)


def scan_documents(root: Path, extension: str = ".md") -> list[Path]:
    """Every eligible document under ``root``, in sorted path order."""
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith(".") and d not in config.IGNORED_DIRS
        )
        for filename in sorted(filenames):
            path = current / filename
            if filename.endswith(extension) and not is_ignored(path, root):
                found.append(path)
    return found


class FileWatcher:
    """Background watcher that reports document changes to the engine."""

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    async def start(self, engine: LinkGraphEngine) -> None:
        """Watch the root in a background task, then report existing documents.

        The watch is armed before the scan so a document created while the
        scan runs is reported by one or the other; reporting it twice is
        harmless.
        """
        if self._running:
            logger.warning("File watcher already running")
            return

        root = engine.watch_root
        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch_loop(engine, self._stop_event))
        # Let the task enter awatch, which starts the native watcher.
        await asyncio.sleep(0)
        logger.info(f"Watching directory: {root}")

        existing = await asyncio.to_thread(scan_documents, root, engine.extension)
        for path in existing:
            engine.file_added(path)
        logger.info(f"Found {len(existing)} documents under {root}")

    async def stop(self) -> None:
        """Stop the file watcher."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("File watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self, engine: LinkGraphEngine, stop_event: asyncio.Event) -> None:
        root = engine.watch_root

        def watch_filter(change: Change, path: str) -> bool:
            return not is_ignored(Path(path), root)

        try:
            async for changes in awatch(
                root,
                watch_filter=watch_filter,
                stop_event=stop_event,
                debounce=_WATCH_DEBOUNCE_MS,
            ):
                if not self._running:
                    break
                dispatch_changes(engine, changes)
        except asyncio.CancelledError:
            logger.info("File watcher task cancelled")
        except Exception as e:
            logger.error(f"File watcher error: {e}")
        finally:
            self._running = False


def _remove_tree(engine: LinkGraphEngine, directory: Path) -> int:
    """Report every watched document under a vanished directory as removed."""
    removed = 0
    for watched in engine.watched.snapshot():
        if directory in watched.parents:
            engine.file_removed(watched)
            removed += 1
    return removed


def _add_tree(engine: LinkGraphEngine, directory: Path) -> int:
    """Report every eligible document under a directory that appeared."""
    added = 0
    for path in scan_documents(directory, engine.extension):
        if is_ignored(path, engine.watch_root) or path in engine.watched:
            continue
        engine.file_added(path)
        added += 1
    return added


def dispatch_changes(engine: LinkGraphEngine, changes: set[tuple[Change, str]]) -> int:
    """Translate raw watchfiles changes into engine events.

    Changes are grouped per path since one batch may hold several for the
    same file; a deletion only counts if the path is really gone, and any
    other change to an unknown document is an addition. A directory moved
    out of or into the root arrives as a single event for the directory, so
    its documents are removed or scanned as a whole.
    """
    by_path: dict[Path, set[Change]] = {}
    for change_type, path_str in changes:
        by_path.setdefault(Path(path_str), set()).add(change_type)

    handled = 0
    for path in sorted(by_path):
        if is_ignored(path, engine.watch_root):
            continue
        gone = Change.deleted in by_path[path] and not path.exists()

        if not engine.is_document(path):
            if gone:
                handled += _remove_tree(engine, path)
            elif path.is_dir():
                handled += _add_tree(engine, path)
            continue

        if gone:
            engine.file_removed(path)
        elif path not in engine.watched:
            engine.file_added(path)
        else:
            engine.file_changed(path)
        handled += 1

    if handled:
        logger.debug(f"Dispatched {handled} file changes")
    return handled


class SettingsWatcher:
    """Reloads palette/config when their files change and schedules a rebuild."""

    def __init__(self, settings: AppSettings, palette: PaletteSource):
        self.settings = settings
        self.palette = palette
        self._task: Optional[asyncio.Task] = None

    def handle_change(self, path: Path, engine: LinkGraphEngine) -> None:
        if path == self.settings.path:
            logger.info("Config changed, reloading...")
            self.settings.load()
            self.palette.load()
        elif path == self.palette.wal_path:
            logger.info("Pywal colors changed, reloading...")
            self.palette.load()
        else:
            return
        engine.request_rebuild()

    async def start(self, engine: LinkGraphEngine) -> None:
        targets = {self.settings.path, self.palette.wal_path}
        directories = sorted({path.parent for path in targets if path.parent.exists()})
        if not directories:
            logger.warning("No settings directories exist, nothing to watch")
            return
        self._task = asyncio.create_task(self._watch_loop(engine, directories, targets))

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _watch_loop(self, engine: LinkGraphEngine, directories: list[Path], targets: set[Path]) -> None:
        def watch_filter(change: Change, path: str) -> bool:
            return Path(path) in targets

        try:
            async for changes in awatch(
                *directories,
                watch_filter=watch_filter,
                recursive=False,
                debounce=_WATCH_DEBOUNCE_MS,
            ):
                for path in sorted({Path(path_str) for _, path_str in changes}):
                    self.handle_change(path, engine)
        except asyncio.CancelledError:
            logger.info("Settings watcher task cancelled")
        except Exception as e:
            logger.error(f"Settings watcher error: {e}")

