"""
Chat Log Export

Exports a mutable chat history (messages plus later edits and deletes) into an
ordered stream of final-state records, replicated to every configured sink.

Usage:
    from chat_export import PipelineOrchestrator, FanoutWriter, build_sinks, load_config

    settings = load_config("config.json")
    writer = FanoutWriter(build_sinks(settings))
    await PipelineOrchestrator(settings, transport, writer).run()
"""

from .config import ExportSettings, load_config
from .models import AttachmentJob, ChannelInfo, ExportRecord, RawEvent, Sender
from .pipeline import PipelineOrchestrator
from .sinks import FanoutWriter, build_sinks
from .transport import ReadResult, Transport

__version__ = "0.1.0"
__all__ = [
    "ExportSettings",
    "load_config",
    "AttachmentJob",
    "ChannelInfo",
    "ExportRecord",
    "RawEvent",
    "Sender",
    "PipelineOrchestrator",
    "FanoutWriter",
    "build_sinks",
    "ReadResult",
    "Transport",
]
