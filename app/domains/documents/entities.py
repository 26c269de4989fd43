import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Tuple

from app.domains.documents.blocks import Block, ensure_blocks, load_blocks, plain_text
from app.domains.documents.links import parse_links
from app.domains.documents.versions import Snapshot

# Fields a save may replace; everything else is owned by the aggregate
UPDATABLE_FIELDS = (
    "title", "blocks", "emoji", "cover_image", "is_favorite", "is_starred", "parent_id"
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document:
    """Document aggregate: metadata plus the live block tree"""

    def __init__(
        self,
        uuid: uuid.UUID,
        title: str,
        blocks: Optional[List[Block]] = None,
        emoji: Optional[str] = None,
        cover_image: Optional[str] = None,
        is_favorite: bool = False,
        is_starred: bool = False,
        created_by: uuid.UUID = None,
        organization_id: uuid.UUID = None,
        parent_id: Optional[uuid.UUID] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.title = title
        self.blocks = list(blocks or [])
        self.emoji = emoji
        self.cover_image = cover_image
        self.is_favorite = is_favorite
        self.is_starred = is_starred
        self.created_by = created_by
        self.organization_id = organization_id
        self.parent_id = parent_id
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or utcnow()

    def apply(self, changes: Dict[str, Any]) -> None:
        """Replace the given fields wholesale and bump updated_at"""
        for name, value in changes.items():
            if name not in UPDATABLE_FIELDS:
                raise ValueError(f"Field {name!r} cannot be updated")
            if name == "blocks":
                value = ensure_blocks(value)
            setattr(self, name, value)
        self.updated_at = utcnow()

    def restore(self, snapshot: Snapshot) -> None:
        """Load title, emoji, cover and blocks from a snapshot.

        Blocks are parsed before anything is assigned, so a malformed snapshot
        raises SnapshotError and leaves the document as it was.
        """
        blocks = load_blocks(snapshot.blocks)
        self.apply({
            "title": snapshot.title,
            "emoji": snapshot.emoji,
            "cover_image": snapshot.cover_image,
            "blocks": blocks,
        })

    def snapshot(self, thumbnail: Optional[str] = None) -> Snapshot:
        return Snapshot.capture(
            title=self.title,
            blocks=self.blocks,
            emoji=self.emoji,
            cover_image=self.cover_image,
            thumbnail=thumbnail
        )

    def is_owner(self, user_id: uuid.UUID) -> bool:
        return user_id == self.created_by

    def links(self) -> List[Tuple[str, str]]:
        """All ``(anchor, target_id)`` smart links in the document"""
        found = []
        for block in self.blocks:
            found.extend(parse_links(block.content))
        return found

    def get_word_count(self) -> int:
        text = plain_text(self.blocks)
        if not text.strip():
            return 0
        return len(text.split())

    @classmethod
    def create_document(
        cls,
        title: Optional[str],
        created_by: uuid.UUID,
        organization_id: uuid.UUID,
        blocks: Optional[List[Block]] = None,
        emoji: Optional[str] = None,
        cover_image: Optional[str] = None,
        parent_id: Optional[uuid.UUID] = None,
        default_title: str = "Untitled"
    ) -> "Document":
        """Create a new document with at least one block and a title"""
        title = (title or "").strip() or default_title
        return cls(
            uuid=uuid.uuid4(),
            title=title,
            blocks=ensure_blocks(blocks or []),
            emoji=emoji,
            cover_image=cover_image,
            created_by=created_by,
            organization_id=organization_id,
            parent_id=parent_id
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Document):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"Document(uuid={self.uuid}, title={self.title!r}, blocks={len(self.blocks)})"


class DocumentVersion:
    """Immutable entry of a document's version history"""

    def __init__(
        self,
        uuid: uuid.UUID,
        document_id: uuid.UUID,
        version_number: int,
        title: str,
        blocks: str,
        emoji: Optional[str] = None,
        cover_image: Optional[str] = None,
        thumbnail: Optional[str] = None,
        created_by: Optional[uuid.UUID] = None,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.document_id = document_id
        self.version_number = version_number
        self.title = title
        self.blocks = blocks
        self.emoji = emoji
        self.cover_image = cover_image
        self.thumbnail = thumbnail
        self.created_by = created_by
        self.created_at = created_at or utcnow()

    @property
    def snapshot(self) -> Snapshot:
        return Snapshot(
            title=self.title,
            blocks=self.blocks,
            emoji=self.emoji,
            cover_image=self.cover_image,
            thumbnail=self.thumbnail
        )

    def parsed_blocks(self) -> List[Block]:
        return load_blocks(self.blocks)

    @classmethod
    def create_version(
        cls,
        document_id: uuid.UUID,
        version_number: int,
        snapshot: Snapshot,
        created_by: Optional[uuid.UUID] = None
    ) -> "DocumentVersion":
        return cls(
            uuid=uuid.uuid4(),
            document_id=document_id,
            version_number=version_number,
            title=snapshot.title,
            blocks=snapshot.blocks,
            emoji=snapshot.emoji,
            cover_image=snapshot.cover_image,
            thumbnail=snapshot.thumbnail,
            created_by=created_by
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, DocumentVersion):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"DocumentVersion(uuid={self.uuid}, document_id={self.document_id}, version={self.version_number})"
