from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from app.core.auth import ActingSession, get_current_session
from app.core.db import get_db
from app.core.exceptions import DocumentNotFoundError
from app.domains.documents.schemas import (
    DocumentCreate, DocumentUpdate, DocumentResponse, DocumentListResponse,
    DocumentTitleResponse, TemplateResponse
)
from app.domains.documents.services import DocumentService
from app.domains.documents.templates import TEMPLATES

router = APIRouter(prefix="/documents", tags=["documents"])
templates_router = APIRouter(prefix="/templates", tags=["templates"])


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@templates_router.get("", response_model=List[TemplateResponse])
async def list_templates():
    """Template catalog for new documents"""
    return [
        TemplateResponse(
            id=template.id,
            title=template.title,
            description=template.description,
            category=template.category,
            popular=template.popular
        )
        for template in TEMPLATES
    ]


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    document_data: DocumentCreate,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Create a document, empty or from a template"""
    document_service = DocumentService(db)

    try:
        document = await document_service.create_document(
            created_by=acting.user_id,
            organization_id=acting.organization_id,
            title=document_data.title,
            blocks=document_data.blocks,
            emoji=document_data.emoji,
            cover_image=document_data.cover_image,
            parent_id=document_data.parent_id,
            template_id=document_data.template_id
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return DocumentResponse.from_entity(document, acting.user_id)


async def _list(acting: ActingSession, db: AsyncSession, limit: int, offset: int, **filters):
    documents = await DocumentService(db).list_documents(
        acting.organization_id, limit=limit, offset=offset, **filters
    )
    return DocumentListResponse(
        documents=[DocumentResponse.from_entity(doc, acting.user_id) for doc in documents],
        total=len(documents)
    )


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Documents of the caller's organization, most recently updated first"""
    return await _list(acting, db, limit, offset)


@router.get("/favorites", response_model=DocumentListResponse)
async def list_favorites(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    return await _list(acting, db, limit, offset, favorites_only=True)


@router.get("/starred", response_model=DocumentListResponse)
async def list_starred(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    return await _list(acting, db, limit, offset, starred_only=True)


@router.get("/titles", response_model=List[DocumentTitleResponse])
async def list_titles(
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Title index used for smart-link detection"""
    refs = await DocumentService(db).list_titles(acting.organization_id)
    return [DocumentTitleResponse(uuid=uuid.UUID(ref.id), title=ref.title) for ref in refs]


@router.get("/search", response_model=List[DocumentTitleResponse])
async def search_documents(
    q: str = Query(..., min_length=1, max_length=255),
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Documents whose title contains ``q``, ignoring case"""
    refs = await DocumentService(db).search_documents(acting.organization_id, q)
    return [DocumentTitleResponse(uuid=uuid.UUID(ref.id), title=ref.title) for ref in refs]


@router.get("/{document_uuid}", response_model=DocumentResponse)
async def get_document(
    document_uuid: uuid.UUID,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    document_service = DocumentService(db)

    try:
        document = await document_service.get_document(document_uuid, acting.organization_id)
    except DocumentNotFoundError as e:
        raise _not_found(e)

    return DocumentResponse.from_entity(document, acting.user_id)


@router.put("/{document_uuid}", response_model=DocumentResponse)
async def update_document(
    document_uuid: uuid.UUID,
    update_data: DocumentUpdate,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Save the document; every successful save records a new version"""
    document_service = DocumentService(db)

    try:
        document = await document_service.update_document(
            document_uuid,
            update_data.changes(),
            user_id=acting.user_id,
            organization_id=acting.organization_id
        )
    except DocumentNotFoundError as e:
        raise _not_found(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return DocumentResponse.from_entity(document, acting.user_id)


@router.post("/{document_uuid}/favorite", response_model=DocumentResponse)
async def toggle_favorite(
    document_uuid: uuid.UUID,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    try:
        document = await DocumentService(db).toggle_favorite(
            document_uuid, acting.user_id, acting.organization_id
        )
    except DocumentNotFoundError as e:
        raise _not_found(e)

    return DocumentResponse.from_entity(document, acting.user_id)


@router.post("/{document_uuid}/star", response_model=DocumentResponse)
async def toggle_starred(
    document_uuid: uuid.UUID,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    try:
        document = await DocumentService(db).toggle_starred(
            document_uuid, acting.user_id, acting.organization_id
        )
    except DocumentNotFoundError as e:
        raise _not_found(e)

    return DocumentResponse.from_entity(document, acting.user_id)


@router.get("/{document_uuid}/backlinks", response_model=List[DocumentTitleResponse])
async def get_backlinks(
    document_uuid: uuid.UUID,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Documents that link to this one"""
    try:
        documents = await DocumentService(db).get_backlinks(document_uuid, acting.organization_id)
    except DocumentNotFoundError as e:
        raise _not_found(e)

    return [DocumentTitleResponse(uuid=doc.uuid, title=doc.title) for doc in documents]
