"""
Serialized background downloader for message attachments.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from ..errors import AttachmentError, FetcherClosedError
from ..log import err
from ..metrics import ATTACHMENT_JOBS_TOTAL, ATTACHMENT_QUEUE_SIZE
from ..models import AttachmentJob
from ..transport import Transport


class AttachmentFetcher:
    """One worker, unbounded queue, jobs processed strictly one at a time.

    The worker task is started on demand by ``enqueue`` and exits when the
    queue runs dry. A failed job is logged and the worker moves on. Jobs whose
    destination already exists are skipped.

    Example:
        fetcher = AttachmentFetcher(transport)
        fetcher.enqueue(job)
        ...
        await fetcher.drain()   # at shutdown
    """

    def __init__(self, transport: Transport):
        self._transport = transport
        self._queue: asyncio.Queue[AttachmentJob] = asyncio.Queue()
        self._task: Optional[asyncio.Task[None]] = None
        self._closed = False

    @property
    def queue_size(self) -> int:
        return self._queue.qsize()

    @property
    def idle(self) -> bool:
        return self._task is None or self._task.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, job: AttachmentJob) -> None:
        """Queue a job, starting the worker if it is idle.

        Raises:
            FetcherClosedError: called after ``drain`` began
        """
        if self._closed:
            raise FetcherClosedError(f"Attachment fetcher closed; dropping job {job.message_id}")
        self._queue.put_nowait(job)
        ATTACHMENT_QUEUE_SIZE.set(self._queue.qsize())
        if self.idle:
            self._task = asyncio.create_task(self._run(), name="attachment-fetcher")

    async def drain(self) -> None:
        """Stop accepting jobs and wait until every queued job has been handled."""
        self._closed = True
        if self._task is not None:
            await self._task
        logger.debug("Attachment fetcher drained")

    async def _run(self) -> None:
        while not self._queue.empty():
            job = self._queue.get_nowait()
            ATTACHMENT_QUEUE_SIZE.set(self._queue.qsize())
            try:
                await self._fetch(job)
            except AttachmentError as e:
                ATTACHMENT_JOBS_TOTAL.labels(outcome="failed").inc()
                err(f"{e} ({self._queue.qsize()} left in queue)")
            finally:
                self._queue.task_done()

    async def _fetch(self, job: AttachmentJob) -> None:
        dest = job.destination
        try:
            if dest.exists():
                ATTACHMENT_JOBS_TOTAL.labels(outcome="skipped").inc()
                logger.debug(f"Attachment {job.message_id}: {dest} exists, skipping")
                return
            dest.parent.mkdir(parents=True, exist_ok=True)
            await self._transport.download(job.channel, job.message_id, dest)
        except Exception as e:
            raise AttachmentError(
                f"Attachment {job.message_id} in {job.channel.display_name} failed: "
                f"{type(e).__name__}: {e}"
            ) from e

        ATTACHMENT_JOBS_TOTAL.labels(outcome="downloaded").inc()
        logger.info(
            f"Downloaded attachment {job.message_id} -> {dest} "
            f"({self._queue.qsize()} left in queue)"
        )
