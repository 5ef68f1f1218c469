"""
Prometheus metrics for the export pipeline.

Everything registers in the global REGISTRY; expose it with
``prometheus_client.start_http_server`` (see ``chat-export run --metrics-port``).
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Gauge, Histogram

SINK_WRITES_TOTAL = Counter(
    "chat_export_sink_writes_total",
    "Total sink write calls",
    ["sink", "status"],
)

SINK_WRITE_LATENCY = Histogram(
    "chat_export_sink_write_latency_seconds",
    "Sink write latency in seconds",
    ["sink"],
)

RECORDS_EXPORTED_TOTAL = Counter(
    "chat_export_records_exported_total",
    "Records handed to the fan-out writer",
    ["path"],  # backfill | live
)

ALTERATIONS_TOTAL = Counter(
    "chat_export_alterations_total",
    "Edit/delete events observed",
    ["kind"],
)

ATTACHMENT_JOBS_TOTAL = Counter(
    "chat_export_attachment_jobs_total",
    "Attachment jobs processed",
    ["outcome"],  # downloaded | skipped | failed
)

ATTACHMENT_QUEUE_SIZE = Gauge(
    "chat_export_attachment_queue_size",
    "Attachment jobs waiting in the queue",
)


@contextmanager
def observe_write(sink: str) -> Iterator[None]:
    """Record latency and success/failure of one sink write."""
    start = time.perf_counter()
    try:
        yield
    except Exception:
        SINK_WRITES_TOTAL.labels(sink=sink, status="failure").inc()
        raise
    else:
        SINK_WRITES_TOTAL.labels(sink=sink, status="success").inc()
    finally:
        SINK_WRITE_LATENCY.labels(sink=sink).observe(time.perf_counter() - start)
