"""Domain errors raised by the document services."""


class DocumentError(Exception):
    """Base exception for document operations."""

    pass


class DocumentNotFoundError(DocumentError):
    """Raised when a document id does not exist."""

    pass


class VersionNotFoundError(DocumentError):
    """Raised when a version id does not exist for the document."""

    pass


class CommentNotFoundError(DocumentError):
    """Raised when a comment id does not exist."""

    pass


class SnapshotError(DocumentError):
    """Raised when a serialized block snapshot cannot be parsed.

    A restore that hits this error must leave the live document untouched.
    """

    pass
