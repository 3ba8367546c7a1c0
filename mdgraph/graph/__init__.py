"""Incremental link-graph engine."""

from mdgraph.graph.broadcaster import SnapshotBroadcaster
from mdgraph.graph.cache import ParseCache
from mdgraph.graph.engine import LinkGraphEngine
from mdgraph.graph.resolver import build_graph
from mdgraph.graph.scheduler import UpdateScheduler
from mdgraph.graph.watched import WatchedSet

__all__ = [
    "LinkGraphEngine",
    "ParseCache",
    "SnapshotBroadcaster",
    "UpdateScheduler",
    "WatchedSet",
    "build_graph",
]
