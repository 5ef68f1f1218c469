"""Export pipeline (backfill + live watch)

- BackfillReader: newest-first paginated history
- AlterationResolver: edits/deletes applied during backfill
- WatchBuffer: quiescence window for live messages
- LiveWatcher: subscription -> buffer -> fan-out writer
- AttachmentFetcher: serialized background downloads
- PipelineOrchestrator: per-channel driver and shutdown
"""

from .alterations import AlterationResolver, AlterationState, Deleted, Edited
from .attachments import AttachmentFetcher
from .backfill import BackfillReader
from .orchestrator import PipelineOrchestrator
from .watch_buffer import PendingRecord, WatchBuffer
from .watcher import LiveWatcher

__all__ = [
    "AlterationResolver",
    "AlterationState",
    "Edited",
    "Deleted",
    "AttachmentFetcher",
    "BackfillReader",
    "PendingRecord",
    "WatchBuffer",
    "LiveWatcher",
    "PipelineOrchestrator",
]
