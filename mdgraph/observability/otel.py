"""OpenTelemetry + Prometheus fallback wiring for mdgraph."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from mdgraph import config

logger = logging.getLogger("mdgraph.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_rebuild_counter: Any | None = None
_rebuild_latency_hist: Any | None = None
_graph_size_hist: Any | None = None
_parse_failure_counter: Any | None = None
_broadcast_counter: Any | None = None

_prom_enabled = False
_prom_rebuild_counter: Any | None = None
_prom_rebuild_latency_hist: Any | None = None
_prom_parse_failure_counter: Any | None = None
_prom_broadcast_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _start_prometheus() -> None:
    global _prom_enabled, _prom_rebuild_counter, _prom_rebuild_latency_hist
    global _prom_parse_failure_counter, _prom_broadcast_counter

    try:
        from prometheus_client import Counter, Histogram, start_http_server

        start_http_server(config.PROM_PORT)
        _prom_rebuild_counter = Counter(
            "mdgraph_rebuilds_total",
            "Count of graph rebuilds by outcome",
            ["result"],
        )
        _prom_rebuild_latency_hist = Histogram(
            "mdgraph_rebuild_latency_ms",
            "Latency of the parse + resolve + publish pipeline",
            ["result"],
        )
        _prom_parse_failure_counter = Counter(
            "mdgraph_parse_failures_total",
            "Count of documents that could not be read",
        )
        _prom_broadcast_counter = Counter(
            "mdgraph_broadcasts_total",
            "Count of snapshots pushed to subscribers",
        )
        _prom_enabled = True
        logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Prometheus fallback not started: %s", exc)
        _prom_enabled = False


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _rebuild_counter, _rebuild_latency_hist, _graph_size_hist
    global _parse_failure_counter, _broadcast_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (MDGRAPH_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "mdgraph"

    resource = Resource.create({"service.name": service_name, "service.namespace": "mdgraph"})

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)

    metric_reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=metrics_endpoint or None))
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("mdgraph")

    _rebuild_counter = meter.create_counter(
        "mdgraph_rebuilds_total",
        unit="1",
        description="Count of graph rebuilds by outcome",
    )
    _rebuild_latency_hist = meter.create_histogram(
        "mdgraph_rebuild_latency_ms",
        unit="ms",
        description="Latency of the parse + resolve + publish pipeline",
    )
    _graph_size_hist = meter.create_histogram(
        "mdgraph_graph_size",
        unit="1",
        description="Node and edge counts of rebuilt graphs",
    )
    _parse_failure_counter = meter.create_counter(
        "mdgraph_parse_failures_total",
        unit="1",
        description="Count of documents that could not be read",
    )
    _broadcast_counter = meter.create_counter(
        "mdgraph_broadcasts_total",
        unit="1",
        description="Count of snapshots pushed to subscribers",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = trace.get_tracer("mdgraph")
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        _start_prometheus()

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception:
        pass
    try:
        if _meter_provider is not None:
            _meter_provider.shutdown()
    except Exception:
        pass
    try:
        if _trace_provider is not None:
            _trace_provider.shutdown()
    except Exception:
        pass
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_rebuild(result: str, duration_ms: float, *, nodes: int, links: int) -> None:
    labels = {"result": result or "unknown"}
    if _enabled and _rebuild_counter is not None:
        _rebuild_counter.add(1, labels)
    if _enabled and _rebuild_latency_hist is not None:
        _rebuild_latency_hist.record(max(0.0, float(duration_ms)), labels)
    if _enabled and _graph_size_hist is not None:
        _graph_size_hist.record(max(0, int(nodes)), {"kind": "nodes"})
        _graph_size_hist.record(max(0, int(links)), {"kind": "links"})
    if _prom_enabled and _prom_rebuild_counter is not None:
        _prom_rebuild_counter.labels(**labels).inc()
    if _prom_enabled and _prom_rebuild_latency_hist is not None:
        _prom_rebuild_latency_hist.labels(**labels).observe(max(0.0, float(duration_ms)))


def record_parse_failure() -> None:
    if _enabled and _parse_failure_counter is not None:
        _parse_failure_counter.add(1)
    if _prom_enabled and _prom_parse_failure_counter is not None:
        _prom_parse_failure_counter.inc()


def record_broadcast(subscribers: int) -> None:
    if _enabled and _broadcast_counter is not None:
        _broadcast_counter.add(1, {"has_subscribers": str(subscribers > 0).lower()})
    if _prom_enabled and _prom_broadcast_counter is not None:
        _prom_broadcast_counter.inc()
