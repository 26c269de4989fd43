"""Snapshots, snapshot diffing and append serialization for version history.

Versions are full copies: every save stores the whole serialized block list.
Diffs are only computed when two snapshots are compared.
"""
import asyncio
import difflib
import weakref
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from app.domains.documents.blocks import Block, dump_blocks, load_blocks


@dataclass(frozen=True)
class Snapshot:
    """Immutable copy of a document's displayable state"""
    title: str
    blocks: str
    emoji: Optional[str] = None
    cover_image: Optional[str] = None
    thumbnail: Optional[str] = None

    @classmethod
    def capture(
        cls,
        title: str,
        blocks: Sequence[Block],
        emoji: Optional[str] = None,
        cover_image: Optional[str] = None,
        thumbnail: Optional[str] = None
    ) -> "Snapshot":
        # Serializing copies the tree, so the snapshot never aliases live blocks
        return cls(
            title=title,
            blocks=dump_blocks(blocks),
            emoji=emoji,
            cover_image=cover_image,
            thumbnail=thumbnail
        )

    def parsed_blocks(self) -> List[Block]:
        return load_blocks(self.blocks)


@dataclass
class BlockChange:
    block_id: str
    kind: str  # "added", "removed", "modified" or "moved"
    before: Optional[Block] = None
    after: Optional[Block] = None
    moved: bool = False


@dataclass
class SnapshotDiff:
    title: Optional[Tuple[str, str]] = None
    emoji: Optional[Tuple[Optional[str], Optional[str]]] = None
    cover_image: Optional[Tuple[Optional[str], Optional[str]]] = None
    blocks: List[BlockChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.emoji or self.cover_image or self.blocks)

    def count(self, kind: str) -> int:
        return sum(1 for change in self.blocks if change.kind == kind)


def _changed(old, new):
    return (old, new) if old != new else None


def _block_modified(old: Block, new: Block) -> bool:
    return (
        old.type != new.type
        or old.content != new.content
        or old.done != new.done
        or old.children != new.children
    )


def diff_blocks(old_blocks: Sequence[Block], new_blocks: Sequence[Block]) -> List[BlockChange]:
    """Block-level changes keyed by block id, in the order of ``new_blocks``.

    Reordering is detected with a longest-matching-subsequence over the ids
    both lists share; shared ids outside that subsequence are reported as moved.
    """
    old_by_id = {block.id: block for block in old_blocks}
    new_ids = {block.id for block in new_blocks}

    common_old = [block.id for block in old_blocks if block.id in new_ids]
    common_new = [block.id for block in new_blocks if block.id in old_by_id]
    matcher = difflib.SequenceMatcher(a=common_old, b=common_new, autojunk=False)
    stable = set()
    for match in matcher.get_matching_blocks():
        stable.update(common_old[match.a:match.a + match.size])

    changes = []
    for block in new_blocks:
        before = old_by_id.get(block.id)
        if before is None:
            changes.append(BlockChange(block.id, "added", after=block))
            continue

        moved = block.id not in stable
        if _block_modified(before, block):
            changes.append(BlockChange(block.id, "modified", before=before, after=block, moved=moved))
        elif moved:
            changes.append(BlockChange(block.id, "moved", before=before, after=block, moved=True))

    for block in old_blocks:
        if block.id not in new_ids:
            changes.append(BlockChange(block.id, "removed", before=block))

    return changes


def diff_snapshots(old: Snapshot, new: Snapshot) -> SnapshotDiff:
    """Compare two snapshots. Raises SnapshotError if either is malformed"""
    return SnapshotDiff(
        title=_changed(old.title, new.title),
        emoji=_changed(old.emoji, new.emoji),
        cover_image=_changed(old.cover_image, new.cover_image),
        blocks=diff_blocks(old.parsed_blocks(), new.parsed_blocks())
    )


class VersionLocks:
    """Per-document locks serializing version appends.

    ``version_number`` is derived from the current count, so two appends for
    the same document must never interleave. Locks live only while in use.
    """

    def __init__(self):
        self._locks = weakref.WeakValueDictionary()

    def for_document(self, document_id) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        return lock


version_locks = VersionLocks()
