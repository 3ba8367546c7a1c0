"""Pydantic models for parsed documents and published graph snapshots."""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# ── Parse cache records ─────────────────────────────────────────────

class RawLink(BaseModel):
    """A reference found in document text, before resolution."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["wiki", "std"]
    target: str


class FileRecord(BaseModel):
    """Parsed state of one document. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    id: str  # path relative to the watch root, forward slashes
    name: str  # base name without the document extension
    links: tuple[RawLink, ...] = ()


# ── Published graph ─────────────────────────────────────────────────

class GraphNode(BaseModel):
    id: str


class GraphLink(BaseModel):
    source: str
    target: str


class GraphSnapshot(BaseModel):
    nodes: list[GraphNode] = Field(default_factory=list)
    links: list[GraphLink] = Field(default_factory=list)
    palette: list[Any] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)
