"""
Sink capability: a persistent destination for export records.

Sinks are plain classes satisfying the ``Sink`` protocol; the fan-out writer
holds a fixed list of them chosen at startup. Each sink opens its resource in
``init`` and keeps it until ``close``.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from ..models import ExportRecord


@runtime_checkable
class Sink(Protocol):
    name: str

    async def init(self) -> None:
        ...

    async def write(self, channel_name: str, record: ExportRecord) -> None:
        ...

    async def write_batch(self, channel_name: str, records: Sequence[ExportRecord]) -> None:
        ...

    async def close(self) -> None:
        ...
