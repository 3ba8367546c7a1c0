"""Resolve cached link records into a node/edge graph."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Mapping

from mdgraph.models import FileRecord, GraphLink, GraphNode, GraphSnapshot, RawLink
from mdgraph.parsers.documents import document_id, document_name

logger = logging.getLogger("mdgraph.graph")


class _Indices:
    def __init__(self) -> None:
        self.by_id: dict[str, GraphNode] = {}
        self.by_name: dict[str, str] = {}


def _resolve_wiki(target: str, indices: _Indices, extension: str) -> str | None:
    # An id-shaped match always beats a display-name match.
    if target in indices.by_id:
        return target
    with_extension = f"{target}{extension}"
    if with_extension in indices.by_id:
        return with_extension
    return indices.by_name.get(target)


def _resolve_std(
    target: str,
    source_path: Path,
    indices: _Indices,
    watch_root: Path,
    extension: str,
) -> str | None:
    try:
        absolute = os.path.normpath(os.path.join(os.path.dirname(source_path), target))
        candidate = document_id(absolute, watch_root)
    except (TypeError, ValueError):
        candidate = None
    if candidate is not None and candidate in indices.by_id:
        return candidate
    return indices.by_name.get(document_name(target, extension))


def resolve_link(
    link: RawLink,
    source_path: Path,
    indices: _Indices,
    watch_root: Path,
    extension: str = ".md",
) -> str | None:
    if link.kind == "wiki":
        return _resolve_wiki(link.target, indices, extension)
    return _resolve_std(link.target, source_path, indices, watch_root, extension)


def build_graph(
    paths: Iterable[Path],
    records: Mapping[Path, FileRecord],
    watch_root: Path,
    extension: str = ".md",
) -> GraphSnapshot:
    """Build nodes and edges for every path in ``paths`` that has a record.

    ``paths`` is iterated in order; when two documents share a display name
    the later one owns the name. Unresolvable references produce no edge and
    repeated references produce repeated edges.
    """
    # Pass 1: nodes and lookup indices.
    indices = _Indices()
    nodes: list[GraphNode] = []
    entries: list[tuple[Path, FileRecord]] = []
    for path in paths:
        record = records.get(path)
        if record is None:
            continue
        if record.id in indices.by_id:
            logger.warning(f"Duplicate document id {record.id!r} skipped")
            continue
        node = GraphNode(id=record.id)
        nodes.append(node)
        indices.by_id[record.id] = node
        indices.by_name[record.name] = record.id
        entries.append((path, record))

    # Pass 2: edges, against fully populated indices.
    links: list[GraphLink] = []
    unresolved = 0
    for path, record in entries:
        for link in record.links:
            target_id = resolve_link(link, path, indices, watch_root, extension)
            if target_id is None:
                unresolved += 1
                continue
            links.append(GraphLink(source=record.id, target=target_id))

    if unresolved:
        logger.debug(f"{unresolved} references did not resolve to a document")
    return GraphSnapshot(nodes=nodes, links=links)
