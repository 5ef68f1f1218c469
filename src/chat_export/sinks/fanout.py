"""
Fan-out writer: replicate every write to all configured sinks.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence

from loguru import logger

from ..errors import SinkWriteError
from ..models import ExportRecord
from .base import Sink


class FanoutWriter:
    """Dispatches each write to every sink concurrently.

    A call succeeds only if every sink succeeds. All sinks are awaited before
    the outcome is decided, then any failure is raised as ``SinkWriteError``
    listing each failed sink.

    Example:
        writer = FanoutWriter([JsonlSink("export.jsonl"), ElasticsearchSink()])
        await writer.init()
        await writer.write_batch("family#general", records)
        await writer.close()
    """

    def __init__(self, sinks: Sequence[Sink]):
        self._sinks = list(sinks)

    @property
    def sinks(self) -> list[Sink]:
        return list(self._sinks)

    async def __aenter__(self) -> "FanoutWriter":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def init(self) -> None:
        if not self._sinks:
            logger.warning("No sinks enabled; records will not be persisted")
        await self._fanout("init", lambda s: s.init())

    async def write(self, channel_name: str, record: ExportRecord) -> None:
        await self._fanout("write", lambda s: s.write(channel_name, record))

    async def write_batch(self, channel_name: str, records: Sequence[ExportRecord]) -> None:
        if not records:
            return
        await self._fanout("write_batch", lambda s: s.write_batch(channel_name, records))

    async def close(self) -> None:
        await self._fanout("close", lambda s: s.close())

    async def _fanout(self, operation: str, call: Callable[[Sink], Awaitable[None]]) -> None:
        results = await asyncio.gather(
            *(call(sink) for sink in self._sinks), return_exceptions=True
        )
        failures = [
            (sink.name, result)
            for sink, result in zip(self._sinks, results)
            if isinstance(result, BaseException)
        ]
        if failures:
            raise SinkWriteError(operation, failures)
