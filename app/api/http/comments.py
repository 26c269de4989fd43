from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from app.core.auth import ActingSession, get_current_session
from app.core.db import get_db
from app.core.exceptions import CommentNotFoundError, DocumentNotFoundError
from app.domains.comments.schemas import (
    CommentCreate, CommentListResponse, CommentResponse, ReactionToggle, ReactionToggleResponse
)
from app.domains.comments.services import CommentService

router = APIRouter(tags=["comments"])


@router.get("/documents/{document_uuid}/comments", response_model=CommentListResponse)
async def list_comments(
    document_uuid: uuid.UUID,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Comment threads of a document"""
    try:
        threads = await CommentService(db).list_comments(document_uuid, acting.organization_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return CommentListResponse(
        comments=[CommentResponse.from_entity(comment) for comment in threads],
        total=len(threads)
    )


@router.post(
    "/documents/{document_uuid}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_comment(
    document_uuid: uuid.UUID,
    comment_data: CommentCreate,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    try:
        comment = await CommentService(db).add_comment(
            document_uuid,
            comment_data.text,
            acting.user_id,
            parent_id=comment_data.parent_id,
            organization_id=acting.organization_id
        )
    except (DocumentNotFoundError, CommentNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return CommentResponse.from_entity(comment)


@router.post("/comments/{comment_uuid}/resolve", response_model=CommentResponse)
async def resolve_comment(
    comment_uuid: uuid.UUID,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    try:
        comment = await CommentService(db).resolve_comment(comment_uuid, acting.organization_id)
    except CommentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return CommentResponse.from_entity(comment)


@router.delete("/comments/{comment_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_uuid: uuid.UUID,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Delete a comment with its replies; only the author may do so"""
    try:
        await CommentService(db).delete_comment(comment_uuid, acting.user_id, acting.organization_id)
    except CommentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.post("/comments/{comment_uuid}/reactions", response_model=ReactionToggleResponse)
async def toggle_reaction(
    comment_uuid: uuid.UUID,
    reaction: ReactionToggle,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Add the caller's emoji reaction, or remove it when already present"""
    try:
        added = await CommentService(db).toggle_reaction(
            comment_uuid,
            acting.user_id,
            reaction.emoji,
            organization_id=acting.organization_id
        )
    except CommentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return ReactionToggleResponse(comment_id=comment_uuid, emoji=reaction.emoji, added=added)
