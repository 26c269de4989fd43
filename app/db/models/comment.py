from sqlalchemy import Column, String, Text, Boolean, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import BaseModel


class Comment(BaseModel):
    __tablename__ = "comments"

    document_id = Column(Uuid(as_uuid=True), ForeignKey("documents.uuid"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    created_by = Column(Uuid(as_uuid=True), nullable=False)
    parent_id = Column(Uuid(as_uuid=True), ForeignKey("comments.uuid"), nullable=True)
    resolved = Column(Boolean, nullable=False, default=False)

    # Relationships
    document = relationship("Document", back_populates="comments")


class CommentReaction(BaseModel):
    __tablename__ = "comment_reactions"
    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", "emoji", name="uq_comment_reactions_user_emoji"),
    )

    comment_id = Column(Uuid(as_uuid=True), ForeignKey("comments.uuid"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), nullable=False)
    emoji = Column(String(32), nullable=False)
