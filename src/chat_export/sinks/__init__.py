"""Persistent destinations for export records and the fan-out writer."""

from .base import Sink
from .elasticsearch import ElasticsearchSink, index_name
from .factory import build_sinks
from .fanout import FanoutWriter
from .jsonl import JsonlSink

__all__ = [
    "Sink",
    "JsonlSink",
    "ElasticsearchSink",
    "index_name",
    "FanoutWriter",
    "build_sinks",
]
