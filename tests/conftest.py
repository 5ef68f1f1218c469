"""
Pytest configuration and fixtures for chat-log-export.

Provides cross-platform event loop configuration, an event builder, an
in-memory transport and recording sinks.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

import pytest

from chat_export.models import (
    AttachmentBody,
    AttachmentContent,
    ChannelInfo,
    DeleteBody,
    DeleteContent,
    EditBody,
    EditContent,
    ExportRecord,
    HeadlineBody,
    HeadlineContent,
    RawEvent,
    ReactionBody,
    ReactionContent,
    Sender,
    SystemBody,
    SystemContent,
    TextBody,
    TextContent,
)
from chat_export.transport import ReadResult

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


ALICE = Sender(uid="uid-alice", username="alice", device_id="dev-phone", device_name="phone")
ALICE_LAPTOP = Sender(uid="uid-alice", username="alice", device_id="dev-laptop", device_name="laptop")


class EventBuilder:
    """Terse constructors for RawEvents (sent_at mirrors id)."""

    def text(self, id: int, body: str, sender: Sender = ALICE, reply_to: Optional[int] = None, **kw):
        return RawEvent(
            id=id,
            sent_at=1_600_000_000 + id,
            sender=sender,
            content=TextContent(text=TextBody(body=body, reply_to=reply_to)),
            **kw,
        )

    def attachment(self, id: int, filename: str, title: str = "", sender: Sender = ALICE):
        return RawEvent(
            id=id,
            sent_at=1_600_000_000 + id,
            sender=sender,
            content=AttachmentContent(
                attachment=AttachmentBody(
                    filename=filename, title=title, path=f"/remote/{filename}", asset_type="image"
                )
            ),
        )

    def edit(self, id: int, target: int, body: str, sender: Sender = ALICE):
        return RawEvent(
            id=id,
            sent_at=1_600_000_000 + id,
            sender=sender,
            content=EditContent(edit=EditBody(message_id=target, body=body)),
        )

    def delete(self, id: int, targets: Sequence[int], sender: Sender = ALICE):
        return RawEvent(
            id=id,
            sent_at=1_600_000_000 + id,
            sender=sender,
            content=DeleteContent(delete=DeleteBody(message_ids=list(targets))),
        )

    def reaction(self, id: int, target: int, emoji: str, sender: Sender = ALICE):
        return RawEvent(
            id=id,
            sent_at=1_600_000_000 + id,
            sender=sender,
            content=ReactionContent(reaction=ReactionBody(body=emoji, message_id=target)),
        )

    def system(self, id: int, text: str):
        return RawEvent(
            id=id,
            sent_at=1_600_000_000 + id,
            sender=ALICE,
            content=SystemContent(system=SystemBody(text=text, system_type="createteam")),
        )

    def headline(self, id: int, headline: str):
        return RawEvent(
            id=id,
            sent_at=1_600_000_000 + id,
            sender=ALICE,
            content=HeadlineContent(headline=HeadlineBody(headline=headline)),
        )

    def malformed_text(self, id: int):
        return RawEvent(id=id, sent_at=1_600_000_000 + id, sender=ALICE, content=TextContent())


class FakeTransport:
    """In-memory transport serving pre-built pages and recording calls."""

    def __init__(
        self,
        channels: Sequence[ChannelInfo] = (),
        pages: Optional[dict[str, list[list[RawEvent]]]] = None,
        fail_downloads: Sequence[int] = (),
    ):
        self.channels = list(channels)
        self.pages = pages or {}
        self.fail_downloads = set(fail_downloads)
        self.reads: list[tuple[str, int, Optional[str]]] = []
        self.subscriptions: dict[str, tuple] = {}
        self.downloads: list[tuple[int, Path]] = []
        self.closed = False

    async def list_channels(self):
        return list(self.channels)

    async def read(self, channel, *, page_size, cursor=None):
        self.reads.append((channel.id, page_size, cursor))
        pages = self.pages.get(channel.id, [])
        index = int(cursor) if cursor is not None else 0
        events = pages[index] if index < len(pages) else []
        is_last = index >= len(pages) - 1
        return ReadResult(
            events=events, next_cursor=None if is_last else str(index + 1), is_last=is_last
        )

    async def subscribe(self, channel, on_event, on_error):
        self.subscriptions[channel.id] = (on_event, on_error)
        return channel.id

    async def download(self, channel, message_id, destination):
        await asyncio.sleep(0)
        self.downloads.append((message_id, destination))
        if message_id in self.fail_downloads:
            raise ConnectionError("transfer interrupted")
        destination.write_bytes(b"attachment-bytes")

    async def close(self):
        self.closed = True

    def emit(self, channel_id: str, event: RawEvent) -> None:
        on_event, _ = self.subscriptions[channel_id]
        on_event(event)


class RecordingSink:
    """Sink that keeps everything it is given."""

    def __init__(self, name: str = "recording"):
        self.name = name
        self.records: list[tuple[str, ExportRecord]] = []
        self.batches: list[tuple[str, list[ExportRecord]]] = []
        self.initialized = False
        self.closed = False

    async def init(self) -> None:
        self.initialized = True

    async def write(self, channel_name, record) -> None:
        await asyncio.sleep(0)
        self.records.append((channel_name, record))

    async def write_batch(self, channel_name, records) -> None:
        await asyncio.sleep(0)
        self.batches.append((channel_name, list(records)))
        self.records.extend((channel_name, r) for r in records)

    async def close(self) -> None:
        self.closed = True

    @property
    def ids(self) -> list[int]:
        return [r.id for _, r in self.records]


class FailingSink(RecordingSink):
    """Sink whose writes always raise."""

    def __init__(self, name: str = "failing"):
        super().__init__(name)

    async def write(self, channel_name, record) -> None:
        raise RuntimeError("disk full")

    async def write_batch(self, channel_name, records) -> None:
        raise RuntimeError("disk full")


@pytest.fixture
def ev():
    return EventBuilder()


@pytest.fixture
def channel():
    return ChannelInfo(id="c1", name="alice,bob")


@pytest.fixture
def team_channel():
    return ChannelInfo(id="c2", name="family", topic_name="general")


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def failing_sink():
    return FailingSink()


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def make_sink():
    return RecordingSink


@pytest.fixture
def laptop():
    return ALICE_LAPTOP
