"""
Chunked historical backfill over the transport's paginated read.
"""

from __future__ import annotations

from typing import AsyncIterator, Optional, Sequence

from loguru import logger

from ..config import DEFAULT_PAGE_SIZE
from ..errors import ChatExportError, TransportError
from ..models import ChannelInfo, RawEvent
from ..transport import Transport


class BackfillReader:
    """Reads a channel's full history, one page per step.

    Pages, and events within a page, come newest first. The alteration
    resolver relies on that order.

    Page size stays well below the transport's reliability ceiling (~950);
    larger reads have been seen to fail.
    """

    def __init__(self, transport: Transport, page_size: int = DEFAULT_PAGE_SIZE):
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        self._transport = transport
        self._page_size = page_size

    @property
    def page_size(self) -> int:
        return self._page_size

    async def read_all(
        self, channel: ChannelInfo, cursor: Optional[str] = None
    ) -> AsyncIterator[Sequence[RawEvent]]:
        """Yield non-empty pages until the transport reports the last page.

        No retries: a failed page read raises ``TransportError``.
        """
        logger.info(f"Backfill start: {channel.display_name}")
        total = 0
        pages = 0
        while True:
            try:
                result = await self._transport.read(
                    channel, page_size=self._page_size, cursor=cursor
                )
            except ChatExportError:
                raise
            except Exception as e:
                raise TransportError(
                    f"Page read failed for {channel.display_name} (cursor={cursor!r}): {e}"
                ) from e

            pages += 1
            total += len(result.events)
            if result.events:
                yield result.events

            if result.is_last or result.next_cursor is None:
                break
            cursor = result.next_cursor

        logger.info(
            f"Backfill end: {channel.display_name} ({total} events in {pages} pages)"
        )
