from sqlalchemy import Column, String, Text, Integer, Boolean, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import BaseModel


class Document(BaseModel):
    __tablename__ = "documents"

    title = Column(String(255), nullable=False)
    # Serialized block list, parsed by the domain layer
    blocks = Column(Text, nullable=False, default="[]")
    emoji = Column(String(32), nullable=True)
    cover_image = Column(Text, nullable=True)
    is_favorite = Column(Boolean, nullable=False, default=False)
    is_starred = Column(Boolean, nullable=False, default=False)
    # Users and organizations live in the auth service, so no foreign keys here
    created_by = Column(Uuid(as_uuid=True), nullable=False, index=True)
    organization_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    parent_id = Column(Uuid(as_uuid=True), ForeignKey("documents.uuid"), nullable=True)

    # Relationships
    versions = relationship("DocumentVersion", back_populates="document", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="document", cascade="all, delete-orphan")


class DocumentVersion(BaseModel):
    __tablename__ = "document_versions"
    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_document_versions_number"),
    )

    document_id = Column(Uuid(as_uuid=True), ForeignKey("documents.uuid"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    blocks = Column(Text, nullable=False)
    emoji = Column(String(32), nullable=True)
    cover_image = Column(Text, nullable=True)
    thumbnail = Column(Text, nullable=True)
    created_by = Column(Uuid(as_uuid=True), nullable=True)

    # Relationships
    document = relationship("Document", back_populates="versions")
