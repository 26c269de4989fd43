from app.db.models.document import Document, DocumentVersion
from app.db.models.comment import Comment, CommentReaction

__all__ = [
    "Document",
    "DocumentVersion",
    "Comment",
    "CommentReaction"
]
