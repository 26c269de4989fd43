from typing import Optional, List, TYPE_CHECKING
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import uuid

from app.db.models.document import Document as DocumentModel, DocumentVersion as DocumentVersionModel
from app.domains.documents.blocks import dump_blocks, load_blocks

if TYPE_CHECKING:
    from app.domains.documents.entities import Document, DocumentVersion


class DocumentRepository:
    """Persistence for document aggregates"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, document: "Document") -> "Document":
        """Insert a new document"""
        db_document = DocumentModel(
            uuid=document.uuid,
            title=document.title,
            blocks=dump_blocks(document.blocks),
            emoji=document.emoji,
            cover_image=document.cover_image,
            is_favorite=document.is_favorite,
            is_starred=document.is_starred,
            created_by=document.created_by,
            organization_id=document.organization_id,
            parent_id=document.parent_id,
            created_at=document.created_at,
            updated_at=document.updated_at
        )

        self.session.add(db_document)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValueError("Invalid parent_id")
        await self.session.refresh(db_document)
        return self._to_domain(db_document)

    async def get_by_uuid(self, document_uuid: uuid.UUID) -> Optional["Document"]:
        result = await self.session.execute(
            select(DocumentModel).where(DocumentModel.uuid == document_uuid)
        )
        db_document = result.scalar_one_or_none()
        return self._to_domain(db_document) if db_document else None

    async def update(self, document: "Document") -> "Document":
        """Full replace of the document's mutable fields"""
        stmt = (
            update(DocumentModel)
            .where(DocumentModel.uuid == document.uuid)
            .values(
                title=document.title,
                blocks=dump_blocks(document.blocks),
                emoji=document.emoji,
                cover_image=document.cover_image,
                is_favorite=document.is_favorite,
                is_starred=document.is_starred,
                parent_id=document.parent_id,
                updated_at=document.updated_at
            )
        )

        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValueError("Invalid parent_id")
        except SQLAlchemyError:
            await self.session.rollback()
            raise

        self.session.expire_all()
        return await self.get_by_uuid(document.uuid)

    async def list_by_organization(
        self,
        organization_id: uuid.UUID,
        favorites_only: bool = False,
        starred_only: bool = False,
        limit: int = 100,
        offset: int = 0
    ) -> List["Document"]:
        """Documents of an organization, most recently updated first"""
        query = select(DocumentModel).where(DocumentModel.organization_id == organization_id)

        if favorites_only:
            query = query.where(DocumentModel.is_favorite.is_(True))
        if starred_only:
            query = query.where(DocumentModel.is_starred.is_(True))

        result = await self.session.execute(
            query
            .order_by(DocumentModel.updated_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return [self._to_domain(doc) for doc in result.scalars().all()]

    async def list_titles(self, organization_id: uuid.UUID) -> List[tuple]:
        """``(uuid, title)`` pairs for the link detector's title index"""
        result = await self.session.execute(
            select(DocumentModel.uuid, DocumentModel.title)
            .where(DocumentModel.organization_id == organization_id)
            .order_by(DocumentModel.created_at)
        )
        return [(row.uuid, row.title) for row in result.all()]

    async def search_titles(self, organization_id: uuid.UUID, text: str, limit: int = 20) -> List[tuple]:
        """Case-insensitive title substring search; ``%`` and ``_`` match literally"""
        pattern = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        result = await self.session.execute(
            select(DocumentModel.uuid, DocumentModel.title)
            .where(
                and_(
                    DocumentModel.organization_id == organization_id,
                    DocumentModel.title.ilike(f"%{pattern}%", escape="\\")
                )
            )
            .order_by(DocumentModel.title)
            .limit(limit)
        )
        return [(row.uuid, row.title) for row in result.all()]

    async def find_linking_to(self, organization_id: uuid.UUID, document_uuid: uuid.UUID) -> List["Document"]:
        """Documents whose blocks contain a link to ``document_uuid``"""
        result = await self.session.execute(
            select(DocumentModel)
            .where(
                and_(
                    DocumentModel.organization_id == organization_id,
                    DocumentModel.uuid != document_uuid,
                    DocumentModel.blocks.contains(f"](/documents/{document_uuid})")
                )
            )
            .order_by(DocumentModel.updated_at.desc())
        )
        return [self._to_domain(doc) for doc in result.scalars().all()]

    def _to_domain(self, db_document: DocumentModel) -> "Document":
        from app.domains.documents.entities import Document

        return Document(
            uuid=db_document.uuid,
            title=db_document.title,
            blocks=load_blocks(db_document.blocks),
            emoji=db_document.emoji,
            cover_image=db_document.cover_image,
            is_favorite=db_document.is_favorite,
            is_starred=db_document.is_starred,
            created_by=db_document.created_by,
            organization_id=db_document.organization_id,
            parent_id=db_document.parent_id,
            created_at=db_document.created_at,
            updated_at=db_document.updated_at
        )


class DocumentVersionRepository:
    """Append-only storage of document versions"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, version: "DocumentVersion") -> "DocumentVersion":
        db_version = DocumentVersionModel(
            uuid=version.uuid,
            document_id=version.document_id,
            version_number=version.version_number,
            title=version.title,
            blocks=version.blocks,
            emoji=version.emoji,
            cover_image=version.cover_image,
            thumbnail=version.thumbnail,
            created_by=version.created_by,
            created_at=version.created_at,
            updated_at=version.created_at
        )

        self.session.add(db_version)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        await self.session.refresh(db_version)
        return self._to_domain(db_version)

    async def get_by_uuid(self, document_id: uuid.UUID, version_uuid: uuid.UUID) -> Optional["DocumentVersion"]:
        result = await self.session.execute(
            select(DocumentVersionModel).where(
                and_(
                    DocumentVersionModel.document_id == document_id,
                    DocumentVersionModel.uuid == version_uuid
                )
            )
        )
        db_version = result.scalar_one_or_none()
        return self._to_domain(db_version) if db_version else None

    async def get_by_number(self, document_id: uuid.UUID, version_number: int) -> Optional["DocumentVersion"]:
        result = await self.session.execute(
            select(DocumentVersionModel).where(
                and_(
                    DocumentVersionModel.document_id == document_id,
                    DocumentVersionModel.version_number == version_number
                )
            )
        )
        db_version = result.scalar_one_or_none()
        return self._to_domain(db_version) if db_version else None

    async def list_by_document(self, document_id: uuid.UUID) -> List["DocumentVersion"]:
        """All versions of a document, oldest first"""
        result = await self.session.execute(
            select(DocumentVersionModel)
            .where(DocumentVersionModel.document_id == document_id)
            .order_by(DocumentVersionModel.version_number.asc())
        )
        return [self._to_domain(version) for version in result.scalars().all()]

    async def count_by_document(self, document_id: uuid.UUID) -> int:
        result = await self.session.execute(
            select(func.count(DocumentVersionModel.uuid))
            .where(DocumentVersionModel.document_id == document_id)
        )
        return result.scalar()

    def _to_domain(self, db_version: DocumentVersionModel) -> "DocumentVersion":
        from app.domains.documents.entities import DocumentVersion

        return DocumentVersion(
            uuid=db_version.uuid,
            document_id=db_version.document_id,
            version_number=db_version.version_number,
            title=db_version.title,
            blocks=db_version.blocks,
            emoji=db_version.emoji,
            cover_image=db_version.cover_image,
            thumbnail=db_version.thumbnail,
            created_by=db_version.created_by,
            created_at=db_version.created_at
        )
