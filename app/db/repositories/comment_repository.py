from typing import Optional, List, TYPE_CHECKING
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, and_, or_
from sqlalchemy.exc import SQLAlchemyError
import uuid

from app.db.models.comment import Comment as CommentModel, CommentReaction as CommentReactionModel

if TYPE_CHECKING:
    from app.domains.comments.entities import Comment, CommentReaction


class CommentRepository:
    """Persistence for document comments and their reactions"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, comment: "Comment") -> "Comment":
        db_comment = CommentModel(
            uuid=comment.uuid,
            document_id=comment.document_id,
            text=comment.text,
            created_by=comment.created_by,
            parent_id=comment.parent_id,
            resolved=comment.resolved,
            created_at=comment.created_at,
            updated_at=comment.created_at
        )

        self.session.add(db_comment)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        await self.session.refresh(db_comment)
        return self._to_domain(db_comment)

    async def get_by_uuid(self, comment_uuid: uuid.UUID) -> Optional["Comment"]:
        result = await self.session.execute(
            select(CommentModel).where(CommentModel.uuid == comment_uuid)
        )
        db_comment = result.scalar_one_or_none()
        return self._to_domain(db_comment) if db_comment else None

    async def list_by_document(self, document_id: uuid.UUID) -> List["Comment"]:
        """All comments of a document, oldest first"""
        result = await self.session.execute(
            select(CommentModel)
            .where(CommentModel.document_id == document_id)
            .order_by(CommentModel.created_at.asc())
        )
        return [self._to_domain(comment) for comment in result.scalars().all()]

    async def set_resolved(self, comment_uuid: uuid.UUID, resolved: bool = True) -> None:
        await self.session.execute(
            update(CommentModel)
            .where(CommentModel.uuid == comment_uuid)
            .values(resolved=resolved)
        )
        await self.session.commit()

    async def delete(self, comment_uuid: uuid.UUID) -> bool:
        """Delete a comment together with its replies and reactions"""
        ids = select(CommentModel.uuid).where(
            or_(CommentModel.uuid == comment_uuid, CommentModel.parent_id == comment_uuid)
        )
        await self.session.execute(
            delete(CommentReactionModel).where(CommentReactionModel.comment_id.in_(ids))
        )
        await self.session.execute(
            delete(CommentModel).where(CommentModel.parent_id == comment_uuid)
        )
        result = await self.session.execute(
            delete(CommentModel).where(CommentModel.uuid == comment_uuid)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def get_reaction(
        self,
        comment_uuid: uuid.UUID,
        user_id: uuid.UUID,
        emoji: str
    ) -> Optional["CommentReaction"]:
        result = await self.session.execute(
            select(CommentReactionModel).where(
                and_(
                    CommentReactionModel.comment_id == comment_uuid,
                    CommentReactionModel.user_id == user_id,
                    CommentReactionModel.emoji == emoji
                )
            )
        )
        db_reaction = result.scalar_one_or_none()
        return self._reaction_to_domain(db_reaction) if db_reaction else None

    async def add_reaction(self, reaction: "CommentReaction") -> "CommentReaction":
        db_reaction = CommentReactionModel(
            uuid=reaction.uuid,
            comment_id=reaction.comment_id,
            user_id=reaction.user_id,
            emoji=reaction.emoji,
            created_at=reaction.created_at,
            updated_at=reaction.created_at
        )

        self.session.add(db_reaction)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        await self.session.refresh(db_reaction)
        return self._reaction_to_domain(db_reaction)

    async def remove_reaction(self, reaction_uuid: uuid.UUID) -> None:
        await self.session.execute(
            delete(CommentReactionModel).where(CommentReactionModel.uuid == reaction_uuid)
        )
        await self.session.commit()

    async def list_reactions(self, comment_uuids: List[uuid.UUID]) -> List["CommentReaction"]:
        if not comment_uuids:
            return []
        result = await self.session.execute(
            select(CommentReactionModel)
            .where(CommentReactionModel.comment_id.in_(comment_uuids))
            .order_by(CommentReactionModel.created_at.asc())
        )
        return [self._reaction_to_domain(r) for r in result.scalars().all()]

    def _to_domain(self, db_comment: CommentModel) -> "Comment":
        from app.domains.comments.entities import Comment

        return Comment(
            uuid=db_comment.uuid,
            document_id=db_comment.document_id,
            text=db_comment.text,
            created_by=db_comment.created_by,
            parent_id=db_comment.parent_id,
            resolved=db_comment.resolved,
            created_at=db_comment.created_at
        )

    def _reaction_to_domain(self, db_reaction: CommentReactionModel) -> "CommentReaction":
        from app.domains.comments.entities import CommentReaction

        return CommentReaction(
            uuid=db_reaction.uuid,
            comment_id=db_reaction.comment_id,
            user_id=db_reaction.user_id,
            emoji=db_reaction.emoji,
            created_at=db_reaction.created_at
        )
