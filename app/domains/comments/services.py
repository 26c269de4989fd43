import logging
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from app.core.exceptions import CommentNotFoundError, DocumentNotFoundError
from app.db.repositories.comment_repository import CommentRepository
from app.db.repositories.document_repository import DocumentRepository
from app.domains.comments.entities import Comment, CommentReaction

logger = logging.getLogger(__name__)


class CommentService:
    """Comments, replies and reactions on documents"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.comment_repository = CommentRepository(session)
        self.document_repository = DocumentRepository(session)

    async def _require_document(self, document_id: uuid.UUID, organization_id: Optional[uuid.UUID]) -> None:
        document = await self.document_repository.get_by_uuid(document_id)
        if not document or (organization_id and document.organization_id != organization_id):
            raise DocumentNotFoundError(f"Document {document_id} not found")

    async def get_comment(self, comment_id: uuid.UUID) -> Comment:
        comment = await self.comment_repository.get_by_uuid(comment_id)
        if not comment:
            raise CommentNotFoundError(f"Comment {comment_id} not found")
        return comment

    async def list_comments(
        self,
        document_id: uuid.UUID,
        organization_id: Optional[uuid.UUID] = None
    ) -> List[Comment]:
        """Top-level comments with their replies and reactions attached"""
        await self._require_document(document_id, organization_id)

        comments = await self.comment_repository.list_by_document(document_id)
        reactions = await self.comment_repository.list_reactions([c.uuid for c in comments])

        by_id = {comment.uuid: comment for comment in comments}
        for reaction in reactions:
            by_id[reaction.comment_id].reactions.append(reaction)

        threads = []
        for comment in comments:
            parent = by_id.get(comment.parent_id) if comment.parent_id else None
            if parent is not None:
                parent.replies.append(comment)
            else:
                threads.append(comment)
        return threads

    async def add_comment(
        self,
        document_id: uuid.UUID,
        text: str,
        user_id: uuid.UUID,
        parent_id: Optional[uuid.UUID] = None,
        organization_id: Optional[uuid.UUID] = None
    ) -> Comment:
        """Add a comment; a reply to a reply is attached to the thread root"""
        await self._require_document(document_id, organization_id)

        if parent_id is not None:
            parent = await self.get_comment(parent_id)
            if parent.document_id != document_id:
                raise CommentNotFoundError(f"Comment {parent_id} not found on document {document_id}")
            parent_id = parent.parent_id or parent.uuid

        comment = Comment.create_comment(document_id, text, user_id, parent_id)
        created = await self.comment_repository.create(comment)
        logger.info(f"Comment {created.uuid} added to document {document_id}")
        return created

    async def get_scoped_comment(self, comment_id: uuid.UUID, organization_id: Optional[uuid.UUID]) -> Comment:
        """A comment on a document of ``organization_id``; any other is reported as not found"""
        comment = await self.get_comment(comment_id)
        try:
            await self._require_document(comment.document_id, organization_id)
        except DocumentNotFoundError:
            raise CommentNotFoundError(f"Comment {comment_id} not found")
        return comment

    async def resolve_comment(self, comment_id: uuid.UUID, organization_id: Optional[uuid.UUID] = None) -> Comment:
        await self.get_scoped_comment(comment_id, organization_id)
        await self.comment_repository.set_resolved(comment_id, True)
        return await self.get_comment(comment_id)

    async def delete_comment(
        self,
        comment_id: uuid.UUID,
        user_id: uuid.UUID,
        organization_id: Optional[uuid.UUID] = None
    ) -> None:
        comment = await self.get_scoped_comment(comment_id, organization_id)

        if comment.created_by != user_id:
            raise PermissionError("Only the author can delete this comment")

        await self.comment_repository.delete(comment_id)
        logger.info(f"Comment {comment_id} deleted")

    async def toggle_reaction(
        self,
        comment_id: uuid.UUID,
        user_id: uuid.UUID,
        emoji: str,
        organization_id: Optional[uuid.UUID] = None
    ) -> bool:
        """Add the reaction if absent, remove it if present. Returns True when added"""
        await self.get_scoped_comment(comment_id, organization_id)

        existing = await self.comment_repository.get_reaction(comment_id, user_id, emoji)
        if existing:
            await self.comment_repository.remove_reaction(existing.uuid)
            return False

        await self.comment_repository.add_reaction(
            CommentReaction.create_reaction(comment_id, user_id, emoji)
        )
        return True
