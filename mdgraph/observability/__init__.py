"""Observability helpers."""

from mdgraph.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_broadcast,
    record_parse_failure,
    record_rebuild,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_broadcast",
    "record_parse_failure",
    "record_rebuild",
]
