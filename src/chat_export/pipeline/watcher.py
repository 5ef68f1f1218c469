"""
Live watcher: subscribes to a channel and exports new messages after their
quiescence window has passed.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from loguru import logger

from ..convert import RecordConverter
from ..errors import FetcherClosedError, MalformedEventError
from ..log import err, warn
from ..metrics import ALTERATIONS_TOTAL, RECORDS_EXPORTED_TOTAL
from ..models import ChannelInfo, ExportRecord, RawEvent
from ..sinks.fanout import FanoutWriter
from ..transport import Transport
from .attachments import AttachmentFetcher
from .watch_buffer import WatchBuffer

FailureCallback = Callable[[BaseException], None]


class LiveWatcher:
    """Feeds one channel's live events through a WatchBuffer.

    Commits are written through the fan-out writer as background tasks; a
    failed write is reported to ``on_failure`` (the orchestrator treats it as
    fatal). Attachments are queued when their record commits, so a message
    deleted inside the window is never downloaded.
    """

    def __init__(
        self,
        transport: Transport,
        channel: ChannelInfo,
        converter: RecordConverter,
        writer: FanoutWriter,
        *,
        timeout: float,
        fetcher: Optional[AttachmentFetcher] = None,
        on_failure: Optional[FailureCallback] = None,
    ):
        self._transport = transport
        self._channel = channel
        self._converter = converter
        self._writer = writer
        self._fetcher = fetcher
        self._on_failure = on_failure
        self._buffer = WatchBuffer(timeout)
        self._writes: set[asyncio.Task[None]] = set()
        self._stopped = False

    @property
    def channel(self) -> ChannelInfo:
        return self._channel

    @property
    def buffer(self) -> WatchBuffer:
        return self._buffer

    async def start(self) -> None:
        """Register the subscription; returns once the transport confirms it."""
        logger.info(f"Watching for new messages: {self._channel.display_name}")
        await self._transport.subscribe(
            self._channel, self.on_event, self.on_error
        )

    async def stop(self) -> None:
        """Drop held records and wait for in-flight commit writes."""
        self._stopped = True
        dropped = self._buffer.cancel_all()
        if dropped:
            warn(f"{dropped} held message(s) in {self._channel.display_name} were not exported")
        if self._writes:
            await asyncio.gather(*self._writes, return_exceptions=True)

    def on_event(self, event: RawEvent) -> None:
        if self._stopped:
            return
        logger.debug(f"Watcher: new event ({event.id}, {event.kind}): {self._channel.display_name}")
        content = event.content

        if content.type == "edit":
            if content.edit is None:
                warn(f"Skipping malformed edit event {event.id}")
                return
            ALTERATIONS_TOTAL.labels(kind="edit").inc()
            self._buffer.apply_edit(content.edit.message_id, content.edit.body, event.sender)
            return

        if content.type == "delete":
            if content.delete is None:
                warn(f"Skipping malformed delete event {event.id}")
                return
            ALTERATIONS_TOTAL.labels(kind="delete").inc()
            self._buffer.apply_delete(content.delete.message_ids)
            return

        try:
            record = self._converter.convert(event, self._channel)
        except MalformedEventError as e:
            warn(f"Skipping event: {e}")
            return
        if record is not None:
            self._buffer.hold(record, self._commit)

    def on_error(self, error: BaseException) -> None:
        err(f"Watcher error in {self._channel.display_name}: {error}")

    def _commit(self, record: ExportRecord) -> None:
        task = asyncio.create_task(self._write(record))
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)

    async def _write(self, record: ExportRecord) -> None:
        try:
            await self._writer.write(self._channel.display_name, record)
        except Exception as e:
            if self._on_failure is not None:
                self._on_failure(e)
                return
            raise
        RECORDS_EXPORTED_TOTAL.labels(path="live").inc()
        logger.debug(f"Watcher: exported {record.id} from {self._channel.display_name}")

        job = self._converter.attachment_job(self._channel, record)
        if job is not None and self._fetcher is not None:
            try:
                self._fetcher.enqueue(job)
            except FetcherClosedError as e:
                warn(str(e))
