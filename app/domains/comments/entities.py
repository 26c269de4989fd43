import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CommentReaction:
    """An emoji reaction by one user on one comment"""

    def __init__(
        self,
        uuid: uuid.UUID,
        comment_id: uuid.UUID,
        user_id: uuid.UUID,
        emoji: str,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.comment_id = comment_id
        self.user_id = user_id
        self.emoji = emoji
        self.created_at = created_at or utcnow()

    @classmethod
    def create_reaction(cls, comment_id: uuid.UUID, user_id: uuid.UUID, emoji: str) -> "CommentReaction":
        return cls(uuid=uuid.uuid4(), comment_id=comment_id, user_id=user_id, emoji=emoji)


class Comment:
    """A comment on a document; replies point at a top-level comment"""

    def __init__(
        self,
        uuid: uuid.UUID,
        document_id: uuid.UUID,
        text: str,
        created_by: uuid.UUID,
        parent_id: Optional[uuid.UUID] = None,
        resolved: bool = False,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.document_id = document_id
        self.text = text
        self.created_by = created_by
        self.parent_id = parent_id
        self.resolved = resolved
        self.created_at = created_at or utcnow()
        self.replies: List["Comment"] = []
        self.reactions: List[CommentReaction] = []

    @property
    def is_reply(self) -> bool:
        return self.parent_id is not None

    def grouped_reactions(self) -> Dict[str, List[uuid.UUID]]:
        """Reacting user ids per emoji, in first-reaction order"""
        grouped: Dict[str, List[uuid.UUID]] = {}
        for reaction in self.reactions:
            grouped.setdefault(reaction.emoji, []).append(reaction.user_id)
        return grouped

    @classmethod
    def create_comment(
        cls,
        document_id: uuid.UUID,
        text: str,
        created_by: uuid.UUID,
        parent_id: Optional[uuid.UUID] = None
    ) -> "Comment":
        return cls(
            uuid=uuid.uuid4(),
            document_id=document_id,
            text=text,
            created_by=created_by,
            parent_id=parent_id
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Comment):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"Comment(uuid={self.uuid}, document_id={self.document_id}, resolved={self.resolved})"
