"""Link graph engine: watcher events in, published snapshots out."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Optional, Protocol

from mdgraph.graph.broadcaster import SnapshotBroadcaster
from mdgraph.graph.cache import ParseCache
from mdgraph.graph.resolver import build_graph
from mdgraph.graph.scheduler import UpdateScheduler
from mdgraph.graph.watched import WatchedSet
from mdgraph.models import GraphSnapshot
from mdgraph.observability import record_rebuild, start_span

logger = logging.getLogger("mdgraph.graph")


class ValueSource(Protocol):
    def current(self) -> Any: ...


class LinkGraphEngine:
    """Owns the watched set, parse cache, scheduler and broadcaster.

    Event handlers mutate state synchronously and schedule a rebuild; the
    rebuild itself runs on the event loop under the scheduler.
    """

    def __init__(
        self,
        watch_root: Path,
        *,
        extension: str = ".md",
        debounce_seconds: float = 0.1,
        palette: Optional[ValueSource] = None,
        settings: Optional[ValueSource] = None,
        broadcaster: Optional[SnapshotBroadcaster] = None,
    ):
        self.watch_root = Path(watch_root).resolve()
        self.extension = extension
        self.watched = WatchedSet()
        self.cache = ParseCache(self.watch_root, extension)
        self.broadcaster = broadcaster or SnapshotBroadcaster()
        self.scheduler = UpdateScheduler(self.rebuild, debounce_seconds)
        self._palette = palette
        self._settings = settings

    def is_document(self, path: Path) -> bool:
        return path.name.endswith(self.extension)

    # ── Watcher events ──────────────────────────────────────────────

    def file_added(self, path: Path) -> None:
        if not self.is_document(path):
            return
        self.watched.add(path)
        self.request_rebuild()

    def file_changed(self, path: Path) -> None:
        if not self.is_document(path):
            return
        self.cache.invalidate(path)
        self.request_rebuild()

    def file_removed(self, path: Path) -> None:
        if not self.is_document(path):
            return
        self.watched.discard(path)
        self.cache.invalidate(path)
        self.request_rebuild()

    def request_rebuild(self) -> None:
        self.scheduler.request_rebuild()

    # ── Rebuild pipeline ────────────────────────────────────────────

    async def rebuild(self) -> GraphSnapshot:
        """Parse missing documents, resolve the graph and publish it."""
        started = time.perf_counter()
        with start_span("mdgraph.rebuild", {"watch_root": str(self.watch_root)}):
            parsed = await self.cache.fill(self.watched.snapshot())

            # Read after the join so removals made during the reads apply.
            paths = self.watched.snapshot()
            graph = build_graph(paths, self.cache.records(paths), self.watch_root, self.extension)
            snapshot = GraphSnapshot(
                nodes=graph.nodes,
                links=graph.links,
                palette=list(self._palette.current()) if self._palette else [],
                config=dict(self._settings.current()) if self._settings else {},
            )
            changed = await self.broadcaster.publish(snapshot)

        duration_ms = (time.perf_counter() - started) * 1000
        record_rebuild(
            "changed" if changed else "unchanged",
            duration_ms,
            nodes=len(snapshot.nodes),
            links=len(snapshot.links),
        )
        if changed:
            logger.info(
                f"Graph updated: {len(snapshot.nodes)} nodes, {len(snapshot.links)} links "
                f"({parsed} parsed, {duration_ms:.1f} ms)"
            )
        return snapshot
