"""Time machine: navigate a document's version history and pick one to restore.

The slider, thumbnail grid and compare views are renderings of one piece of
state, the selected version index (None meaning the live document). The
slider position is derived from it:

    index = floor((count - 1) * position / 100)   for position < 100
    position 100 is always the live document
"""
import enum
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from app.core.exceptions import VersionNotFoundError
from app.domains.documents.entities import DocumentVersion
from app.domains.documents.versions import Snapshot, SnapshotDiff, diff_snapshots

LIVE_POSITION = 100


class ViewMode(str, enum.Enum):
    SLIDER = "slider"
    GRID = "grid"
    COMPARE = "compare"


@dataclass(frozen=True)
class GridEntry:
    version_id: Optional[str]  # None for the live document
    version_number: Optional[int]
    title: str
    thumbnail: Optional[str]
    cover_image: Optional[str]
    selected: bool


def index_for_position(position: float, count: int) -> Optional[int]:
    if count == 0 or position >= LIVE_POSITION:
        return None
    position = max(0, position)
    return math.floor((count - 1) * position / 100)


def position_for_index(index: int, count: int) -> int:
    """Smallest slider position that maps back to ``index``, capped below live.

    The newest version needs position 100, which means live, so it is shown
    at 99. That value is display-only: ``set_position(99)`` selects the
    version before it. Use ``next()`` or ``select_version`` to reach the
    newest version.
    """
    if count <= 1:
        return 0
    return min(LIVE_POSITION - 1, math.ceil(index * 100 / (count - 1)))


class TimeMachine:
    """Navigator over a document's versions, oldest first"""

    def __init__(self, versions: Sequence[DocumentVersion], live: Optional[Snapshot] = None):
        self.versions = sorted(versions, key=lambda v: v.version_number)
        self.live = live
        self.view_mode = ViewMode.SLIDER
        self._index: Optional[int] = None

    @property
    def count(self) -> int:
        return len(self.versions)

    @property
    def is_live(self) -> bool:
        return self._index is None

    @property
    def selected_index(self) -> Optional[int]:
        return self._index

    @property
    def selected_version(self) -> Optional[DocumentVersion]:
        return None if self._index is None else self.versions[self._index]

    @property
    def position(self) -> int:
        if self._index is None:
            return LIVE_POSITION
        return position_for_index(self._index, self.count)

    def set_position(self, position: float) -> Optional[DocumentVersion]:
        position = min(max(position, 0), LIVE_POSITION)
        self._index = index_for_position(position, self.count)
        return self.selected_version

    def next(self) -> Optional[DocumentVersion]:
        """Step to the newer neighbour; stays put on the newest version or live"""
        if self._index is not None and self._index < self.count - 1:
            self._index += 1
        return self.selected_version

    def previous(self) -> Optional[DocumentVersion]:
        """Step to the older neighbour; from live, jump to the newest version"""
        if self.count == 0:
            return None
        if self._index is None:
            self._index = self.count - 1
        elif self._index > 0:
            self._index -= 1
        return self.selected_version

    def jump_to_live(self) -> None:
        self._index = None

    def select_version(self, version_id) -> Optional[DocumentVersion]:
        """Select a version by id, or the live document when ``version_id`` is None"""
        if version_id is None:
            self._index = None
            return None
        for index, version in enumerate(self.versions):
            if str(version.uuid) == str(version_id):
                self._index = index
                return version
        raise VersionNotFoundError(f"Version {version_id} not found")

    def set_view_mode(self, mode) -> None:
        self.view_mode = ViewMode(mode)

    def grid(self) -> List[GridEntry]:
        """Thumbnail grid: the live document first, then every version"""
        entries = []
        if self.live is not None:
            entries.append(GridEntry(
                version_id=None,
                version_number=None,
                title=self.live.title,
                thumbnail=None,
                cover_image=self.live.cover_image,
                selected=self.is_live
            ))
        for index, version in enumerate(self.versions):
            entries.append(GridEntry(
                version_id=str(version.uuid),
                version_number=version.version_number,
                title=version.title,
                thumbnail=version.thumbnail,
                cover_image=version.cover_image,
                selected=index == self._index
            ))
        return entries

    def compare(self) -> Optional[SnapshotDiff]:
        """Changes from the selected version to the live document"""
        if self.live is None or self.selected_version is None:
            return None
        return diff_snapshots(self.selected_version.snapshot, self.live)

    def restore(self, document) -> DocumentVersion:
        """Load the selected version into ``document``.

        Raises SnapshotError for a malformed snapshot, leaving the document
        untouched, and ValueError when the live document is selected.
        """
        version = self.selected_version
        if version is None:
            raise ValueError("The live document is selected; there is nothing to restore")
        document.restore(version.snapshot)
        return version
