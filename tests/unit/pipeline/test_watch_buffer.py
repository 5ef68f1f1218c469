"""
Unit tests for WatchBuffer quiescence timers.

The window is shrunk to fractions of a second; the assertions mirror the
20s scenarios (commit at T, edit at 5 -> commit at 5+T, delete cancels).
"""

import asyncio

import pytest

from chat_export.models import ExportRecord
from chat_export.pipeline import WatchBuffer

T = 0.2


def make_record(id: int, text: str = "hello") -> ExportRecord:
    return ExportRecord(id=id, text=text, sent_at=1, sender_uid="u", device_id="d1")


class Committed:
    def __init__(self):
        self.records: list[ExportRecord] = []
        self.times: list[float] = []

    def __call__(self, record: ExportRecord) -> None:
        self.records.append(record)
        self.times.append(asyncio.get_running_loop().time())


@pytest.mark.asyncio
async def test_commits_once_after_window():
    """Test that a held record commits once after the window."""
    buf = WatchBuffer(timeout=T)
    committed = Committed()
    start = asyncio.get_running_loop().time()

    buf.hold(make_record(1), committed)
    assert 1 in buf

    await asyncio.sleep(T / 2)
    assert committed.records == []

    await asyncio.sleep(T)
    assert [r.text for r in committed.records] == ["hello"]
    assert committed.times[0] - start >= T * 0.9
    assert buf.pending_count == 0

    await asyncio.sleep(T)
    assert len(committed.records) == 1


@pytest.mark.asyncio
async def test_edit_resets_window(laptop):
    """Test that an edit restarts the quiescence window."""
    buf = WatchBuffer(timeout=T)
    committed = Committed()

    buf.hold(make_record(1, "typo"), committed)
    await asyncio.sleep(T / 2)
    assert buf.apply_edit(1, "fixed", laptop) is True

    # Original deadline (T) passes without a commit
    await asyncio.sleep(T * 0.75)
    assert committed.records == []

    # New deadline (T/2 + T) passes
    await asyncio.sleep(T * 0.5)
    assert len(committed.records) == 1
    rec = committed.records[0]
    assert rec.text == "fixed"
    assert rec.edited is True
    assert rec.device_id == "dev-laptop"


@pytest.mark.asyncio
async def test_delete_cancels_commit():
    """Test that deleting a held record cancels its commit."""
    buf = WatchBuffer(timeout=T)
    committed = Committed()

    buf.hold(make_record(1), committed)
    await asyncio.sleep(T / 4)
    assert buf.apply_delete([1]) == 1
    assert 1 not in buf

    await asyncio.sleep(T * 1.5)
    assert committed.records == []


@pytest.mark.asyncio
async def test_edit_after_commit_is_noop(laptop):
    """Test that an edit after commit changes nothing."""
    buf = WatchBuffer(timeout=T / 4)
    committed = Committed()

    buf.hold(make_record(1, "original"), committed)
    await asyncio.sleep(T / 2)
    assert len(committed.records) == 1

    assert buf.apply_edit(1, "too late", laptop) is False
    assert buf.apply_delete([1]) == 0
    await asyncio.sleep(T / 2)
    assert [r.text for r in committed.records] == ["original"]


@pytest.mark.asyncio
async def test_repeated_edits_fire_once(laptop):
    """Test that many edits still produce a single commit."""
    buf = WatchBuffer(timeout=T)
    committed = Committed()

    buf.hold(make_record(1), committed)
    for i in range(5):
        await asyncio.sleep(T / 5)
        buf.apply_edit(1, f"v{i}", laptop)

    await asyncio.sleep(T * 1.5)
    assert [r.text for r in committed.records] == ["v4"]


@pytest.mark.asyncio
async def test_delete_only_touches_listed_ids():
    """Test that a delete leaves other held records alone."""
    buf = WatchBuffer(timeout=T)
    committed = Committed()

    for i in (1, 2, 3):
        buf.hold(make_record(i), committed)
    assert buf.apply_delete([2, 42]) == 1

    await asyncio.sleep(T * 1.5)
    assert sorted(r.id for r in committed.records) == [1, 3]


@pytest.mark.asyncio
async def test_cancel_all_drops_pending():
    """Test that cancel_all drops every held record."""
    buf = WatchBuffer(timeout=T)
    committed = Committed()
    buf.hold(make_record(1), committed)
    buf.hold(make_record(2), committed)

    assert buf.cancel_all() == 2
    await asyncio.sleep(T * 1.5)
    assert committed.records == []


def test_rejects_non_positive_timeout():
    """Test that a non-positive window is rejected."""
    with pytest.raises(ValueError):
        WatchBuffer(timeout=0)
