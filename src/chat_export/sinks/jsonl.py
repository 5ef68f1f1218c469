"""
Append-only JSON Lines sink.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import IO, Optional, Sequence

from loguru import logger

from ..errors import SinkInitError
from ..metrics import observe_write
from ..models import ExportRecord


class JsonlSink:
    """Writes one JSON object per record, each followed by ``eol``.

    The file is opened once in append mode by ``init`` and held until ``close``.

    Example:
        async with JsonlSink("export.jsonl") as sink:
            await sink.write_batch("you,them", records)
    """

    name = "jsonl"

    def __init__(self, path: str | Path, eol: str = "\n"):
        self._path = Path(path)
        self._eol = eol
        self._fh: Optional[IO[str]] = None

    @property
    def path(self) -> Path:
        return self._path

    async def __aenter__(self) -> "JsonlSink":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def init(self) -> None:
        if self._fh is not None:
            return
        try:
            if self._path.parent != Path("."):
                self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self._path, "a", encoding="utf-8", newline="")
        except OSError as e:
            raise SinkInitError(f"Cannot open {self._path}: {e}") from e
        logger.info(f"JSONL sink writing to {self._path}")

    async def write(self, channel_name: str, record: ExportRecord) -> None:
        with observe_write(self.name):
            self._append(self._line(channel_name, record) + self._eol)

    async def write_batch(self, channel_name: str, records: Sequence[ExportRecord]) -> None:
        if not records:
            return
        with observe_write(self.name):
            lines = self._eol.join(self._line(channel_name, r) for r in records)
            self._append(lines + self._eol)

    async def close(self) -> None:
        if self._fh is None:
            return
        self._fh.close()
        self._fh = None

    def _line(self, channel_name: str, record: ExportRecord) -> str:
        return json.dumps(record.to_document(channel_name), ensure_ascii=False)

    def _append(self, data: str) -> None:
        if self._fh is None:
            raise RuntimeError("JsonlSink used before init()")
        self._fh.write(data)
        self._fh.flush()
