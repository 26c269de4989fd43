from app.domains.documents.blocks import Block, BlockType
from app.domains.documents.entities import Document, DocumentVersion
from app.domains.documents.versions import Snapshot

__all__ = [
    "Block", "BlockType",
    "Document", "DocumentVersion",
    "Snapshot"
]
