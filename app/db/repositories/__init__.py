from app.db.repositories.document_repository import DocumentRepository, DocumentVersionRepository
from app.db.repositories.comment_repository import CommentRepository

__all__ = [
    "DocumentRepository",
    "DocumentVersionRepository",
    "CommentRepository"
]
