"""Parse markdown documents into FileRecord entries."""
from __future__ import annotations

import os
from pathlib import Path, PurePath

from mdgraph.link_extraction import extract_links
from mdgraph.models import FileRecord


def document_id(path: Path | str, watch_root: Path | str) -> str:
    """Stable node id: the path relative to the watch root, with forward slashes.

    Raises ``ValueError`` when no relative path exists (e.g. another drive).
    """
    relative = os.path.relpath(os.fspath(path), os.fspath(watch_root))
    return PurePath(relative).as_posix()


def document_name(path: Path | str, extension: str = ".md") -> str:
    """Display name: base name with the document extension removed."""
    base = PurePath(path).name
    if extension and base.endswith(extension) and base != extension:
        return base[: -len(extension)]
    return base


def parse_document_file(path: Path, watch_root: Path, extension: str = ".md") -> FileRecord:
    """Read and parse one document.

    Raises ``OSError`` / ``UnicodeDecodeError`` when the file cannot be read;
    callers decide how a failed read is reported.
    """
    text = path.read_text(encoding="utf-8")
    return FileRecord(
        id=document_id(path, watch_root),
        name=document_name(path, extension),
        links=tuple(extract_links(text)),
    )
