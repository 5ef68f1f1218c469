"""
Pipeline orchestration: backfill every configured channel, optionally keep
watching them, and shut everything down in order.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from ..config import ExportSettings
from ..convert import RecordConverter
from ..errors import MalformedEventError
from ..log import fatal, warn
from ..metrics import RECORDS_EXPORTED_TOTAL
from ..models import ChannelInfo, ExportRecord
from ..sinks.fanout import FanoutWriter
from ..transport import Transport, find_channel
from .alterations import AlterationResolver
from .attachments import AttachmentFetcher
from .backfill import BackfillReader
from .watcher import LiveWatcher


class PipelineOrchestrator:
    """Runs the export for all configured channels.

    Channels are processed one after another. For each one the live watcher
    (if enabled) is registered first, so nothing sent during the backfill is
    missed, then the history is read and written page by page.

    Without watchers, ``run`` shuts down as soon as the backfill is done.
    With watchers, it waits until ``request_shutdown`` is called (normally
    from a signal handler) or a live write fails.

    Shutdown order: stop watchers, drain attachments, close sinks, close
    the transport.
    """

    def __init__(
        self,
        settings: ExportSettings,
        transport: Transport,
        writer: FanoutWriter,
        *,
        converter: Optional[RecordConverter] = None,
        fetcher: Optional[AttachmentFetcher] = None,
    ):
        self._settings = settings
        self._transport = transport
        self._writer = writer
        self._converter = converter or RecordConverter(
            settings.message_types, settings.attachments
        )
        if fetcher is None and settings.attachments.download:
            fetcher = AttachmentFetcher(transport)
        self._fetcher = fetcher
        self._reader = BackfillReader(transport, page_size=settings.page_size)
        self._watchers: list[LiveWatcher] = []
        self._stop = asyncio.Event()
        self._failure: Optional[BaseException] = None
        self._shut_down = False
        self._watching = False

    @property
    def watching(self) -> bool:
        """True once backfill is done and the run is only waiting on live watchers."""
        return self._watching

    @property
    def shutdown_requested(self) -> bool:
        return self._stop.is_set()

    @property
    def watchers(self) -> list[LiveWatcher]:
        return list(self._watchers)

    async def run(self) -> None:
        """Export everything; raises on fatal transport or sink errors."""
        try:
            await self._writer.init()
            logger.info("Getting chat list")
            channels = await self._transport.list_channels()
            logger.info(f"Total chats: {len(channels)}")

            for query in self._settings.chats:
                self._raise_on_failure()
                channel = find_channel(channels, query)
                if channel is None:
                    warn(f"Chat '{query}' not found")
                    continue
                await self.process_channel(channel)

            self._raise_on_failure()
            if self._watchers:
                logger.info(f"Backfill complete; watching {len(self._watchers)} chat(s)")
                self._watching = True
                await self._stop.wait()
        finally:
            await self.shutdown()

        self._raise_on_failure()

    async def process_channel(self, channel: ChannelInfo) -> int:
        """Backfill one channel; returns the number of records written."""
        if self._settings.watcher.enabled:
            watcher = LiveWatcher(
                self._transport,
                channel,
                self._converter,
                self._writer,
                timeout=self._settings.watcher.timeout,
                fetcher=self._fetcher,
                on_failure=self._live_failure,
            )
            await watcher.start()
            self._watchers.append(watcher)

        resolver = AlterationResolver(self._converter, channel)
        written = 0
        async for chunk in self._reader.read_all(channel):
            self._raise_on_failure()
            logger.info(f"New chunk ({len(chunk)}): {channel.display_name}")
            records: list[ExportRecord] = []
            for event in chunk:
                try:
                    record = resolver.process(event)
                except MalformedEventError as e:
                    warn(f"Skipping event: {e}")
                    continue
                if record is not None:
                    records.append(record)

            await self._writer.write_batch(channel.display_name, records)
            RECORDS_EXPORTED_TOTAL.labels(path="backfill").inc(len(records))
            written += len(records)
            self._queue_attachments(channel, records)

        logger.info(f"Exported {written} records from {channel.display_name}")
        return written

    def request_shutdown(self) -> None:
        logger.info("Shutdown requested")
        self._stop.set()

    async def shutdown(self) -> None:
        """Stop watchers, drain attachments, close sinks and transport. Idempotent."""
        if self._shut_down:
            return
        self._shut_down = True
        logger.info("deinit")

        for watcher in self._watchers:
            await watcher.stop()
        try:
            try:
                if self._fetcher is not None:
                    await self._fetcher.drain()
            finally:
                await self._writer.close()
        finally:
            await self._transport.close()

    def _queue_attachments(self, channel: ChannelInfo, records: list[ExportRecord]) -> None:
        if self._fetcher is None:
            return
        for record in records:
            job = self._converter.attachment_job(channel, record)
            if job is not None:
                self._fetcher.enqueue(job)

    def _raise_on_failure(self) -> None:
        # a failed live write ends the whole run, even mid-backfill
        if self._failure is not None:
            raise self._failure

    def _live_failure(self, error: BaseException) -> None:
        fatal(f"Live export failed: {error}")
        if self._failure is None:
            self._failure = error
        self._stop.set()
