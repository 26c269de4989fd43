from app.domains.comments.entities import Comment, CommentReaction

__all__ = ["Comment", "CommentReaction"]
