"""Tests for snapshots and snapshot diffs."""

import asyncio

import pytest

from app.core.exceptions import SnapshotError
from app.domains.documents.blocks import Block, BlockType
from app.domains.documents.versions import Snapshot, VersionLocks, diff_blocks, diff_snapshots


def test_capture_copies_blocks():
    blocks = [Block(id="a", content="one")]
    snapshot = Snapshot.capture("Title", blocks)
    blocks.append(Block(id="b"))
    assert [b.id for b in snapshot.parsed_blocks()] == ["a"]


def test_identical_snapshots_have_empty_diff():
    snapshot = Snapshot.capture("Same", [Block(id="a", content="x")])
    assert diff_snapshots(snapshot, snapshot).is_empty


def test_diff_reports_added_modified_removed():
    old = [Block(id="a", content="one"), Block(id="b", content="two")]
    new = [Block(id="a", content="uno"), Block(id="c", content="three")]

    changes = {change.block_id: change for change in diff_blocks(old, new)}
    assert changes["a"].kind == "modified"
    assert changes["a"].before.content == "one"
    assert changes["a"].after.content == "uno"
    assert changes["c"].kind == "added"
    assert changes["b"].kind == "removed"


def test_diff_detects_type_change():
    old = [Block(id="a", content="x")]
    new = [Block(id="a", type=BlockType.HEADING_2, content="x")]
    assert [c.kind for c in diff_blocks(old, new)] == ["modified"]


def test_diff_detects_moves():
    old = [Block(id="a"), Block(id="b"), Block(id="c")]
    new = [Block(id="c"), Block(id="a"), Block(id="b")]
    changes = diff_blocks(old, new)
    assert [(c.block_id, c.kind) for c in changes] == [("c", "moved")]


def test_diff_metadata_changes():
    old = Snapshot.capture("Old", [Block(id="a")], emoji="📄")
    new = Snapshot.capture("New", [Block(id="a")], emoji="📄", cover_image="cover.png")
    diff = diff_snapshots(old, new)
    assert diff.title == ("Old", "New")
    assert diff.emoji is None
    assert diff.cover_image == (None, "cover.png")
    assert diff.blocks == []


def test_diff_of_malformed_snapshot_raises():
    good = Snapshot.capture("Good", [Block(id="a")])
    bad = Snapshot(title="Bad", blocks="{broken")
    with pytest.raises(SnapshotError):
        diff_snapshots(good, bad)


@pytest.mark.asyncio
async def test_version_locks_serialize_per_document():
    locks = VersionLocks()
    order = []

    async def append(name):
        async with locks.for_document("doc"):
            order.append(f"{name}-start")
            await asyncio.sleep(0)
            order.append(f"{name}-end")

    await asyncio.gather(append("one"), append("two"))
    assert order == ["one-start", "one-end", "two-start", "two-end"]


def test_version_locks_are_per_document():
    locks = VersionLocks()
    first = locks.for_document("a")
    assert locks.for_document("a") is first
    assert locks.for_document("b") is not first
