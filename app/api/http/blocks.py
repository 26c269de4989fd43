from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from app.core.auth import ActingSession, get_current_session
from app.core.db import get_db
from app.core.exceptions import DocumentNotFoundError
from app.domains.documents.schemas import (
    BlockInsert, BlockUpdate, DocumentResponse, KeyPress, KeyPressResponse,
    LinkCandidateResponse, LinkCreate, LinkSuggestionsResponse
)
from app.domains.documents.services import DocumentService

router = APIRouter(prefix="/documents/{document_uuid}/blocks", tags=["blocks"])


@router.post("/{block_id}/insert-after", response_model=DocumentResponse)
async def insert_block_after(
    document_uuid: uuid.UUID,
    block_id: str,
    block_data: BlockInsert,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Insert a new block right after ``block_id``; an unknown id changes nothing"""
    try:
        document = await DocumentService(db).insert_block_after(
            document_uuid,
            block_id,
            block_type=block_data.type,
            content=block_data.content,
            user_id=acting.user_id,
            organization_id=acting.organization_id
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return DocumentResponse.from_entity(document, acting.user_id)


@router.delete("/{block_id}", response_model=DocumentResponse)
async def delete_block(
    document_uuid: uuid.UUID,
    block_id: str,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Delete a block; the last remaining block is never deleted"""
    try:
        document = await DocumentService(db).delete_block(
            document_uuid, block_id, acting.user_id, acting.organization_id
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return DocumentResponse.from_entity(document, acting.user_id)


@router.patch("/{block_id}", response_model=DocumentResponse)
async def update_block(
    document_uuid: uuid.UUID,
    block_id: str,
    block_data: BlockUpdate,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    try:
        document = await DocumentService(db).update_block(
            document_uuid,
            block_id,
            content=block_data.content,
            block_type=block_data.type,
            user_id=acting.user_id,
            organization_id=acting.organization_id
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return DocumentResponse.from_entity(document, acting.user_id)


@router.post("/{block_id}/toggle", response_model=DocumentResponse)
async def toggle_block(
    document_uuid: uuid.UUID,
    block_id: str,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Flip a todo-list block between done and open"""
    try:
        document = await DocumentService(db).toggle_block(
            document_uuid, block_id, acting.user_id, acting.organization_id
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return DocumentResponse.from_entity(document, acting.user_id)


@router.post("/{block_id}/keys", response_model=KeyPressResponse)
async def press_key(
    document_uuid: uuid.UUID,
    block_id: str,
    key_press: KeyPress,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Enter, Backspace and "/" as handled by the block editor"""
    document_service = DocumentService(db)

    try:
        outcome = await document_service.press_key(
            document_uuid,
            block_id,
            key_press.key,
            shift=key_press.shift,
            user_id=acting.user_id,
            organization_id=acting.organization_id
        )
        document = await document_service.get_document(document_uuid, acting.organization_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return KeyPressResponse(
        document=DocumentResponse.from_entity(document, acting.user_id),
        focus_id=outcome.focus_id,
        show_type_menu=outcome.show_type_menu
    )


@router.get("/{block_id}/link-suggestions", response_model=LinkSuggestionsResponse)
async def link_suggestions(
    document_uuid: uuid.UUID,
    block_id: str,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Phrases in the block that could link to other documents"""
    try:
        suggestions = await DocumentService(db).suggest_links(
            document_uuid, block_id, acting.organization_id
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return LinkSuggestionsResponse(
        block_id=block_id,
        candidates=[
            LinkCandidateResponse(text=candidate.text, kind=candidate.kind.value)
            for candidate in suggestions
        ]
    )


@router.post("/{block_id}/links", response_model=DocumentResponse)
async def create_link(
    document_uuid: uuid.UUID,
    block_id: str,
    link_data: LinkCreate,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Turn a phrase of the block into a link to another document"""
    try:
        document = await DocumentService(db).link_block(
            document_uuid,
            block_id,
            link_data.anchor_text,
            link_data.target_id,
            offset=link_data.offset,
            user_id=acting.user_id,
            organization_id=acting.organization_id
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return DocumentResponse.from_entity(document, acting.user_id)
