from __future__ import annotations

from ..config import ExportSettings
from .base import Sink
from .elasticsearch import ElasticsearchSink
from .jsonl import JsonlSink


def build_sinks(settings: ExportSettings) -> list[Sink]:
    """Enabled sinks in a fixed order: elasticsearch, then jsonl."""
    sinks: list[Sink] = []
    if settings.elasticsearch.enabled:
        es = settings.elasticsearch
        sinks.append(ElasticsearchSink(es.url, es.index_pattern, timeout=es.timeout))
    if settings.jsonl.enabled:
        sinks.append(JsonlSink(settings.jsonl.file, eol=settings.eol))
    return sinks
