from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
import uuid
from datetime import datetime

from app.domains.documents.blocks import Block, BlockType, duplicate_ids


def _check_block_ids(blocks):
    if blocks is None:
        return blocks
    duplicates = duplicate_ids(blocks)
    if duplicates:
        raise ValueError(f"Duplicate block ids: {', '.join(duplicates)}")
    return blocks


class DocumentCreate(BaseModel):
    """Schema for creating a document, empty or from a template"""
    title: Optional[str] = Field(None, max_length=255)
    blocks: Optional[List[Block]] = None
    emoji: Optional[str] = Field(None, max_length=32)
    cover_image: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    template_id: Optional[str] = None

    @field_validator('blocks')
    @classmethod
    def validate_blocks(cls, v):
        return _check_block_ids(v)


class DocumentUpdate(BaseModel):
    """Schema for a save: every field sent replaces the stored one"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    blocks: Optional[List[Block]] = None
    emoji: Optional[str] = Field(None, max_length=32)
    cover_image: Optional[str] = None
    is_favorite: Optional[bool] = None
    is_starred: Optional[bool] = None
    parent_id: Optional[uuid.UUID] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip() if v else v

    @field_validator('blocks')
    @classmethod
    def validate_blocks(cls, v):
        return _check_block_ids(v)

    def changes(self) -> dict:
        """Only the fields the client actually sent, with blocks kept as Block objects"""
        changes = {name: getattr(self, name) for name in self.model_fields_set}
        for flag in ("title", "is_favorite", "is_starred", "blocks"):
            if flag in changes and changes[flag] is None:
                del changes[flag]
        return changes


class DocumentResponse(BaseModel):
    uuid: uuid.UUID
    title: str
    blocks: List[Block]
    emoji: Optional[str] = None
    cover_image: Optional[str] = None
    is_favorite: bool
    is_starred: bool
    created_by: uuid.UUID
    organization_id: uuid.UUID
    parent_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    word_count: int
    is_owner: bool

    @classmethod
    def from_entity(cls, document, user_id: Optional[uuid.UUID] = None) -> "DocumentResponse":
        return cls(
            uuid=document.uuid,
            title=document.title,
            blocks=document.blocks,
            emoji=document.emoji,
            cover_image=document.cover_image,
            is_favorite=document.is_favorite,
            is_starred=document.is_starred,
            created_by=document.created_by,
            organization_id=document.organization_id,
            parent_id=document.parent_id,
            created_at=document.created_at,
            updated_at=document.updated_at,
            word_count=document.get_word_count(),
            is_owner=document.is_owner(user_id)
        )


class DocumentListResponse(BaseModel):
    documents: List[DocumentResponse]
    total: int


class DocumentTitleResponse(BaseModel):
    """Entry of the workspace title index"""
    uuid: uuid.UUID
    title: str


class TemplateResponse(BaseModel):
    id: str
    title: str
    description: str
    category: str
    popular: bool


# Blocks

class BlockInsert(BaseModel):
    type: BlockType = BlockType.PARAGRAPH
    content: str = ""


class BlockUpdate(BaseModel):
    content: Optional[str] = None
    type: Optional[BlockType] = None


class KeyPress(BaseModel):
    key: str = Field(..., min_length=1, max_length=32)
    shift: bool = False


class KeyPressResponse(BaseModel):
    document: DocumentResponse
    focus_id: Optional[str] = None
    show_type_menu: bool = False


class LinkCandidateResponse(BaseModel):
    text: str
    kind: Literal["exact", "heuristic"]


class LinkSuggestionsResponse(BaseModel):
    block_id: str
    candidates: List[LinkCandidateResponse]


class LinkCreate(BaseModel):
    """Turn ``anchor_text`` inside a block into a link to another document"""
    anchor_text: str = Field(..., min_length=1)
    target_id: uuid.UUID
    # Start of the user's selection inside the block content
    offset: Optional[int] = Field(None, ge=0)


# Versions

class DocumentVersionCreate(BaseModel):
    """Explicit snapshot input; normally versions are recorded on every save"""
    title: str = Field(..., min_length=1, max_length=255)
    blocks: List[Block] = Field(..., min_length=1)
    emoji: Optional[str] = Field(None, max_length=32)
    cover_image: Optional[str] = None
    thumbnail: Optional[str] = None

    @field_validator('blocks')
    @classmethod
    def validate_blocks(cls, v):
        return _check_block_ids(v)


class DocumentVersionResponse(BaseModel):
    uuid: uuid.UUID
    document_id: uuid.UUID
    version_number: int
    title: str
    # Serialized snapshot, parsed by the caller
    blocks: str
    emoji: Optional[str] = None
    cover_image: Optional[str] = None
    thumbnail: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime

    @classmethod
    def from_entity(cls, version) -> "DocumentVersionResponse":
        return cls(
            uuid=version.uuid,
            document_id=version.document_id,
            version_number=version.version_number,
            title=version.title,
            blocks=version.blocks,
            emoji=version.emoji,
            cover_image=version.cover_image,
            thumbnail=version.thumbnail,
            created_by=version.created_by,
            created_at=version.created_at
        )


class DocumentVersionListResponse(BaseModel):
    versions: List[DocumentVersionResponse]
    total: int


class BlockChangeResponse(BaseModel):
    block_id: str
    kind: Literal["added", "removed", "modified", "moved"]
    before: Optional[Block] = None
    after: Optional[Block] = None
    moved: bool = False


class DocumentDiffResponse(BaseModel):
    """Changes between two versions; ``to_version`` None means the live document"""
    document_id: uuid.UUID
    from_version: int
    to_version: Optional[int] = None
    title: Optional[List[str]] = None
    emoji: Optional[List[Optional[str]]] = None
    cover_image: Optional[List[Optional[str]]] = None
    changes: List[BlockChangeResponse]

    @classmethod
    def from_diff(cls, document_id, from_version: int, to_version: Optional[int], diff) -> "DocumentDiffResponse":
        return cls(
            document_id=document_id,
            from_version=from_version,
            to_version=to_version,
            title=list(diff.title) if diff.title else None,
            emoji=list(diff.emoji) if diff.emoji else None,
            cover_image=list(diff.cover_image) if diff.cover_image else None,
            changes=[
                BlockChangeResponse(
                    block_id=change.block_id,
                    kind=change.kind,
                    before=change.before,
                    after=change.after,
                    moved=change.moved
                )
                for change in diff.blocks
            ]
        )


class GridEntryResponse(BaseModel):
    version_id: Optional[uuid.UUID] = None
    version_number: Optional[int] = None
    title: str
    thumbnail: Optional[str] = None
    cover_image: Optional[str] = None
    selected: bool


class TimelineResponse(BaseModel):
    """State of the time machine after applying the requested navigation"""
    document_id: uuid.UUID
    position: int
    is_live: bool
    selected_index: Optional[int] = None
    version_count: int
    view_mode: Literal["slider", "grid", "compare"]
    selected_version: Optional[DocumentVersionResponse] = None
    grid: Optional[List[GridEntryResponse]] = None
    diff: Optional[DocumentDiffResponse] = None
