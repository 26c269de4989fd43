from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Literal, Optional
import uuid

from app.core.auth import ActingSession, get_current_session
from app.core.db import get_db
from app.core.exceptions import DocumentNotFoundError, SnapshotError, VersionNotFoundError
from app.domains.documents.schemas import (
    DocumentDiffResponse, DocumentResponse, DocumentVersionCreate, DocumentVersionListResponse,
    DocumentVersionResponse, GridEntryResponse, TimelineResponse
)
from app.domains.documents.services import DocumentVersionService
from app.domains.documents.time_machine import ViewMode
from app.domains.documents.versions import Snapshot

router = APIRouter(prefix="/documents/{document_uuid}/versions", tags=["versions"])


@router.get("", response_model=DocumentVersionListResponse)
async def list_versions(
    document_uuid: uuid.UUID,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Version history, oldest first"""
    try:
        versions = await DocumentVersionService(db).list_versions(document_uuid, acting.organization_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return DocumentVersionListResponse(
        versions=[DocumentVersionResponse.from_entity(version) for version in versions],
        total=len(versions)
    )


@router.post("", response_model=DocumentVersionResponse, status_code=status.HTTP_201_CREATED)
async def create_version(
    document_uuid: uuid.UUID,
    version_data: DocumentVersionCreate,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Append an explicit snapshot to the history"""
    snapshot = Snapshot.capture(
        title=version_data.title,
        blocks=version_data.blocks,
        emoji=version_data.emoji,
        cover_image=version_data.cover_image,
        thumbnail=version_data.thumbnail
    )

    try:
        version = await DocumentVersionService(db).create_version_for(
            document_uuid, snapshot, acting.user_id, acting.organization_id
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return DocumentVersionResponse.from_entity(version)


@router.get("/compare", response_model=DocumentDiffResponse)
async def compare_versions(
    document_uuid: uuid.UUID,
    from_version: int = Query(..., ge=1),
    to_version: Optional[int] = Query(None, ge=1),
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Block-level changes between two versions, or a version and the live document"""
    try:
        diff = await DocumentVersionService(db).compare_versions(
            document_uuid, from_version, to_version, acting.organization_id
        )
    except (DocumentNotFoundError, VersionNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SnapshotError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return DocumentDiffResponse.from_diff(document_uuid, from_version, to_version, diff)


@router.get("/timeline", response_model=TimelineResponse)
async def timeline(
    document_uuid: uuid.UUID,
    position: Optional[float] = Query(None, ge=0, le=100),
    version_id: Optional[uuid.UUID] = Query(None),
    step: Optional[Literal["next", "previous", "live"]] = Query(None),
    mode: ViewMode = Query(ViewMode.SLIDER),
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Time machine state: select by slider position or version id, then step"""
    try:
        machine = await DocumentVersionService(db).time_machine(document_uuid, acting.organization_id)
        if position is not None:
            machine.set_position(position)
        elif version_id is not None:
            machine.select_version(version_id)
        if step == "next":
            machine.next()
        elif step == "previous":
            machine.previous()
        elif step == "live":
            machine.jump_to_live()
        machine.set_view_mode(mode)
        diff = machine.compare() if mode == ViewMode.COMPARE else None
    except (DocumentNotFoundError, VersionNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SnapshotError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    selected = machine.selected_version
    return TimelineResponse(
        document_id=document_uuid,
        position=machine.position,
        is_live=machine.is_live,
        selected_index=machine.selected_index,
        version_count=machine.count,
        view_mode=machine.view_mode.value,
        selected_version=DocumentVersionResponse.from_entity(selected) if selected else None,
        grid=[
            GridEntryResponse(
                version_id=entry.version_id,
                version_number=entry.version_number,
                title=entry.title,
                thumbnail=entry.thumbnail,
                cover_image=entry.cover_image,
                selected=entry.selected
            )
            for entry in machine.grid()
        ] if mode == ViewMode.GRID else None,
        diff=DocumentDiffResponse.from_diff(
            document_uuid, selected.version_number, None, diff
        ) if diff is not None else None
    )


@router.get("/{version_uuid}", response_model=DocumentVersionResponse)
async def get_version(
    document_uuid: uuid.UUID,
    version_uuid: uuid.UUID,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    try:
        version = await DocumentVersionService(db).get_version(
            document_uuid, version_uuid, acting.organization_id
        )
    except (DocumentNotFoundError, VersionNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return DocumentVersionResponse.from_entity(version)


@router.post("/{version_uuid}/restore", response_model=DocumentResponse)
async def restore_version(
    document_uuid: uuid.UUID,
    version_uuid: uuid.UUID,
    acting: ActingSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
):
    """Restore a version; the restore is saved and recorded as a new version"""
    try:
        document = await DocumentVersionService(db).restore_version(
            document_uuid, version_uuid, acting.user_id, acting.organization_id
        )
    except (DocumentNotFoundError, VersionNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SnapshotError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return DocumentResponse.from_entity(document, acting.user_id)
