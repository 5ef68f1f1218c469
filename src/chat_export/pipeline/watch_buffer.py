"""
Quiescence buffer for live messages.

Every live message is held for ``timeout`` seconds before it is committed.
Edits arriving in that window rewrite the held record and restart its timer;
deletes drop it. Once committed, a message has left the buffer: later edits
to it are no-ops, and the already exported record is not patched.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from loguru import logger

from ..models import ExportRecord, Sender

CommitCallback = Callable[[ExportRecord], None]


@dataclass
class PendingRecord:
    record: ExportRecord
    on_commit: CommitCallback
    handle: Optional[asyncio.TimerHandle] = None


class WatchBuffer:
    """Holds records until no alteration has touched them for ``timeout`` seconds.

    Each pending id owns exactly one timer handle. Rescheduling always cancels
    the old handle before arming the new one.

    Example:
        buf = WatchBuffer(timeout=20)
        buf.hold(record, lambda r: export(r))
        buf.apply_edit(record.id, "fixed typo", edit_sender)   # timer restarts
        buf.apply_delete([record.id])                          # never exported
    """

    def __init__(self, timeout: float, *, loop: Optional[asyncio.AbstractEventLoop] = None):
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self._timeout = timeout
        self._loop = loop
        self._pending: dict[int, PendingRecord] = {}

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def __contains__(self, message_id: int) -> bool:
        return message_id in self._pending

    def get(self, message_id: int) -> ExportRecord | None:
        entry = self._pending.get(message_id)
        return entry.record if entry else None

    def hold(self, record: ExportRecord, on_commit: CommitCallback) -> None:
        """Start the quiescence window for ``record``."""
        previous = self._pending.get(record.id)
        if previous is not None and previous.handle is not None:
            previous.handle.cancel()
        entry = PendingRecord(record=record, on_commit=on_commit)
        self._pending[record.id] = entry
        self._arm(record.id, entry)

    def apply_edit(self, message_id: int, text: str, sender: Sender) -> bool:
        """Rewrite a pending record and restart its window.

        Returns False (and changes nothing) when the id is not pending.
        """
        entry = self._pending.get(message_id)
        if entry is None:
            logger.debug(f"Watch buffer: edit for {message_id} ignored (not pending)")
            return False

        entry.record = entry.record.model_copy(
            update={
                "text": text,
                "device_id": sender.device_id,
                "device_name": sender.device_name,
                "edited": True,
            }
        )
        self._arm(message_id, entry)
        return True

    def apply_delete(self, message_ids: Iterable[int]) -> int:
        """Cancel pending records; returns how many were dropped."""
        dropped = 0
        for message_id in message_ids:
            entry = self._pending.pop(message_id, None)
            if entry is None:
                logger.debug(f"Watch buffer: delete for {message_id} ignored (not pending)")
                continue
            if entry.handle is not None:
                entry.handle.cancel()
            dropped += 1
        return dropped

    def cancel_all(self) -> int:
        """Drop every pending record without committing it."""
        count = len(self._pending)
        for entry in self._pending.values():
            if entry.handle is not None:
                entry.handle.cancel()
        self._pending.clear()
        return count

    def _arm(self, message_id: int, entry: PendingRecord) -> None:
        if entry.handle is not None:
            entry.handle.cancel()
        loop = self._loop or asyncio.get_running_loop()
        entry.handle = loop.call_later(self._timeout, self._fire, message_id, entry)

    def _fire(self, message_id: int, entry: PendingRecord) -> None:
        # Ignore a stale handle whose entry was replaced or removed.
        if self._pending.get(message_id) is not entry:
            return
        del self._pending[message_id]
        entry.handle = None
        entry.on_commit(entry.record)
