from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
import uuid
from datetime import datetime


class CommentCreate(BaseModel):
    """Schema for adding a comment"""
    text: str = Field(..., min_length=1, max_length=10000)
    parent_id: Optional[uuid.UUID] = None

    @field_validator('text')
    @classmethod
    def validate_text(cls, v):
        if not v.strip():
            raise ValueError('Comment cannot be empty')
        return v.strip()


class ReactionToggle(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=32)


class ReactionToggleResponse(BaseModel):
    comment_id: uuid.UUID
    emoji: str
    added: bool


class CommentResponse(BaseModel):
    uuid: uuid.UUID
    document_id: uuid.UUID
    text: str
    created_by: uuid.UUID
    parent_id: Optional[uuid.UUID] = None
    resolved: bool
    created_at: datetime
    reactions: Dict[str, List[uuid.UUID]] = {}
    replies: List["CommentResponse"] = []

    @classmethod
    def from_entity(cls, comment) -> "CommentResponse":
        return cls(
            uuid=comment.uuid,
            document_id=comment.document_id,
            text=comment.text,
            created_by=comment.created_by,
            parent_id=comment.parent_id,
            resolved=comment.resolved,
            created_at=comment.created_at,
            reactions=comment.grouped_reactions(),
            replies=[cls.from_entity(reply) for reply in comment.replies]
        )


CommentResponse.model_rebuild()


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
    total: int
