"""
Resolution of edits and deletes during a newest-first backfill.

Because history is walked from the present backwards, every edit or delete
is seen before the message it targets. The resolver remembers the first
alteration seen per target id (i.e. the most recent one) and applies it when
the original finally shows up.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from loguru import logger

from ..convert import RecordConverter
from ..errors import MalformedEventError
from ..metrics import ALTERATIONS_TOTAL
from ..models import ChannelInfo, ExportRecord, RawEvent


@dataclass(frozen=True)
class Edited:
    text: str
    device_id: str
    device_name: Optional[str] = None


@dataclass(frozen=True)
class Deleted:
    device_id: str
    device_name: Optional[str] = None


AlterationState = Union[Edited, Deleted]


class AlterationResolver:
    """Per-channel, per-pass table of pending alterations.

    Rules:
        - first edit seen for an id wins (it is the latest one)
        - a delete replaces any edit and is itself never replaced
        - targets that never appear in history are simply never resolved

    Create one instance per backfill pass and drop it afterwards.
    """

    def __init__(self, converter: RecordConverter, channel: ChannelInfo):
        self._converter = converter
        self._channel = channel
        self._states: dict[int, AlterationState] = {}

    def __len__(self) -> int:
        return len(self._states)

    def state_of(self, message_id: int) -> AlterationState | None:
        return self._states.get(message_id)

    def process(self, event: RawEvent) -> ExportRecord | None:
        """Feed one event in traversal order.

        Alterations are recorded and return None; anything else is resolved.
        """
        if event.content.type == "edit":
            self.record_edit(event)
            return None
        if event.content.type == "delete":
            self.record_delete(event)
            return None
        return self.resolve(event)

    def record_edit(self, event: RawEvent) -> None:
        edit = event.content.edit
        if edit is None:
            raise MalformedEventError(event.id, "edit", "missing edit body")
        ALTERATIONS_TOTAL.labels(kind="edit").inc()

        target = edit.message_id
        if target in self._states:
            return
        self._states[target] = Edited(
            text=edit.body,
            device_id=event.sender.device_id,
            device_name=event.sender.device_name,
        )

    def record_delete(self, event: RawEvent) -> None:
        delete = event.content.delete
        if delete is None:
            raise MalformedEventError(event.id, "delete", "missing delete body")
        ALTERATIONS_TOTAL.labels(kind="delete").inc()

        for target in delete.message_ids:
            if isinstance(self._states.get(target), Deleted):
                continue
            self._states[target] = Deleted(
                device_id=event.sender.device_id,
                device_name=event.sender.device_name,
            )

    def resolve(self, event: RawEvent) -> ExportRecord | None:
        """Final record for an original message, or None if it was deleted."""
        state = self._states.get(event.id)
        if isinstance(state, Deleted):
            logger.debug(f"Skipping deleted message {event.id} in {self._channel.display_name}")
            return None

        record = self._converter.convert(event, self._channel)
        if record is None or state is None:
            return record

        return record.model_copy(
            update={
                "text": state.text,
                "device_id": state.device_id,
                "device_name": state.device_name,
                "edited": True,
            }
        )
