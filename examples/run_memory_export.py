"""
Demo: export an in-memory chat history to JSONL, then watch for live messages.

Shows:
- Backfill with an edit and a delete folded into the final records
- Live messages held for the quiescence window before export
- Edits inside the window rewriting the record, deletes dropping it
"""

import asyncio
from pathlib import Path

from loguru import logger

from chat_export import ChannelInfo, ExportSettings, FanoutWriter, PipelineOrchestrator, RawEvent
from chat_export.log import configure_logging
from chat_export.sinks import JsonlSink
from chat_export.transport import ReadResult

SENDER = {"uid": "u-1", "username": "alice", "device_id": "d-1", "device_name": "phone"}


def event(id: int, content: dict) -> RawEvent:
    return RawEvent.model_validate(
        {"id": id, "sent_at": 1_700_000_000 + id, "sender": SENDER, "content": content}
    )


def text(id: int, body: str) -> RawEvent:
    return event(id, {"type": "text", "text": {"body": body}})


def edit(id: int, target: int, body: str) -> RawEvent:
    return event(id, {"type": "edit", "edit": {"message_id": target, "body": body}})


def delete(id: int, *targets: int) -> RawEvent:
    return event(id, {"type": "delete", "delete": {"message_ids": list(targets)}})


class MemoryTransport:
    """Serves two pages of history (newest first) and a live feed."""

    channel = ChannelInfo(id="demo", name="alice,bob")

    def __init__(self):
        self._pages = [
            [delete(6, 4), edit(5, 2, "hello, world"), text(4, "oops, wrong chat")],
            [text(3, "how are you?"), text(2, "hello wrld"), text(1, "hi bob")],
        ]
        self._on_event = None

    async def list_channels(self):
        return [self.channel]

    async def read(self, channel, *, page_size, cursor=None):
        index = int(cursor or 0)
        last = index == len(self._pages) - 1
        return ReadResult(self._pages[index], None if last else str(index + 1), last)

    async def subscribe(self, channel, on_event, on_error):
        self._on_event = on_event

    async def download(self, channel, message_id, destination):
        destination.write_bytes(b"")

    async def close(self):
        logger.info("Transport closed")

    def push(self, ev: RawEvent) -> None:
        self._on_event(ev)


async def main():
    configure_logging("INFO")
    out = Path("demo_export.jsonl")

    settings = ExportSettings(chats=["alice,bob"], watcher={"enabled": True, "timeout": 1.0})
    transport = MemoryTransport()
    orchestrator = PipelineOrchestrator(settings, transport, FanoutWriter([JsonlSink(out)]))

    run = asyncio.create_task(orchestrator.run())
    await asyncio.sleep(0.2)

    transport.push(text(7, "live message"))
    transport.push(text(8, "tpyo"))
    transport.push(edit(9, 8, "typo"))
    transport.push(text(10, "never mind"))
    transport.push(delete(11, 10))

    await asyncio.sleep(1.5)
    orchestrator.request_shutdown()
    await run

    logger.info(f"Export written to {out}:")
    for line in out.read_text(encoding="utf-8").splitlines():
        logger.info(f"  {line}")


if __name__ == "__main__":
    asyncio.run(main())
