import logging
from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from app.core.config import settings
from app.core.exceptions import DocumentNotFoundError, VersionNotFoundError
from app.db.repositories.document_repository import DocumentRepository, DocumentVersionRepository
from app.domains.documents import blocks as block_tree
from app.domains.documents.blocks import Block, BlockType, KeyOutcome
from app.domains.documents.entities import Document, DocumentVersion
from app.domains.documents.links import LinkSuggestions, TitleRef, apply_link, detect_links
from app.domains.documents.templates import TEMPLATE_EMOJI, get_template, template_blocks
from app.domains.documents.thumbnails import ThumbnailRenderer, capture_thumbnail, render_svg_thumbnail
from app.domains.documents.time_machine import TimeMachine
from app.domains.documents.versions import Snapshot, SnapshotDiff, VersionLocks, diff_snapshots, version_locks

logger = logging.getLogger(__name__)


def default_thumbnail_renderer() -> Optional[ThumbnailRenderer]:
    return render_svg_thumbnail if settings.thumbnails_enabled else None


class DocumentService:
    """Document aggregate operations: create, read, save and block edits"""

    def __init__(
        self,
        session: AsyncSession,
        thumbnail_renderer: Optional[ThumbnailRenderer] = None,
        locks: VersionLocks = version_locks
    ):
        self.session = session
        self.document_repository = DocumentRepository(session)
        self.version_service = DocumentVersionService(session, thumbnail_renderer, locks)

    async def create_document(
        self,
        created_by: uuid.UUID,
        organization_id: uuid.UUID,
        title: Optional[str] = None,
        blocks: Optional[List[Block]] = None,
        emoji: Optional[str] = None,
        cover_image: Optional[str] = None,
        parent_id: Optional[uuid.UUID] = None,
        template_id: Optional[str] = None
    ) -> Document:
        """Create a document; creation itself does not record a version"""
        if template_id is not None:
            template = get_template(template_id)
            if template is None:
                raise ValueError(f"Unknown template: {template_id}")
            title = title or template.title
            blocks = blocks or template_blocks(template)
            emoji = emoji or TEMPLATE_EMOJI

        document = Document.create_document(
            title=title,
            created_by=created_by,
            organization_id=organization_id,
            blocks=blocks,
            emoji=emoji,
            cover_image=cover_image,
            parent_id=parent_id,
            default_title=settings.default_document_title
        )

        created = await self.document_repository.create(document)
        logger.info(f"Document {created.uuid} created in organization {organization_id}")
        return created

    async def get_document(
        self,
        document_uuid: uuid.UUID,
        organization_id: Optional[uuid.UUID] = None
    ) -> Document:
        """Fetch a document, raising DocumentNotFoundError when absent"""
        document = await self.document_repository.get_by_uuid(document_uuid)

        if not document or (organization_id and document.organization_id != organization_id):
            raise DocumentNotFoundError(f"Document {document_uuid} not found")

        return document

    async def list_documents(
        self,
        organization_id: uuid.UUID,
        favorites_only: bool = False,
        starred_only: bool = False,
        limit: int = 100,
        offset: int = 0
    ) -> List[Document]:
        return await self.document_repository.list_by_organization(
            organization_id,
            favorites_only=favorites_only,
            starred_only=starred_only,
            limit=limit,
            offset=offset
        )

    async def list_titles(self, organization_id: uuid.UUID) -> List[TitleRef]:
        rows = await self.document_repository.list_titles(organization_id)
        return [TitleRef(id=str(doc_id), title=title) for doc_id, title in rows]

    async def search_documents(self, organization_id: uuid.UUID, text: str) -> List[TitleRef]:
        """Exact-title confirmation search: case-insensitive substring match"""
        text = (text or "").strip()
        if not text:
            return []
        rows = await self.document_repository.search_titles(organization_id, text)
        return [TitleRef(id=str(doc_id), title=title) for doc_id, title in rows]

    async def get_backlinks(self, document_uuid: uuid.UUID, organization_id: uuid.UUID) -> List[Document]:
        await self.get_document(document_uuid, organization_id)
        candidates = await self.document_repository.find_linking_to(organization_id, document_uuid)
        # The query is a substring match on stored JSON; keep only real links
        target = str(document_uuid)
        return [doc for doc in candidates if any(link_target == target for _, link_target in doc.links())]

    async def update_document(
        self,
        document_uuid: uuid.UUID,
        changes: Dict[str, Any],
        user_id: Optional[uuid.UUID] = None,
        organization_id: Optional[uuid.UUID] = None
    ) -> Document:
        """Save: replace the given fields, then record a version of the result"""
        document = await self.get_document(document_uuid, organization_id)
        document.apply(changes)
        return await self.save_document(document, user_id)

    async def save_document(self, document: Document, user_id: Optional[uuid.UUID] = None) -> Document:
        """Persist a mutated aggregate and append a post-save version.

        The version is best-effort: a failure there is logged and the saved
        document is still returned.
        """
        saved = await self.document_repository.update(document)
        logger.info(f"Document {saved.uuid} saved")

        await self.version_service.record_version(saved, created_by=user_id)
        return saved

    async def toggle_favorite(self, document_uuid: uuid.UUID, user_id=None, organization_id=None) -> Document:
        document = await self.get_document(document_uuid, organization_id)
        return await self.update_document(
            document_uuid, {"is_favorite": not document.is_favorite}, user_id, organization_id
        )

    async def toggle_starred(self, document_uuid: uuid.UUID, user_id=None, organization_id=None) -> Document:
        document = await self.get_document(document_uuid, organization_id)
        return await self.update_document(
            document_uuid, {"is_starred": not document.is_starred}, user_id, organization_id
        )

    # Block edits. Each loads the live tree, applies a pure block operation and
    # saves only when the tree actually changed.

    async def _edit_blocks(self, document_uuid, edit, user_id=None, organization_id=None) -> Document:
        document = await self.get_document(document_uuid, organization_id)
        new_blocks = edit(document.blocks)
        if new_blocks == document.blocks:
            return document
        document.apply({"blocks": new_blocks})
        return await self.save_document(document, user_id)

    async def insert_block_after(
        self,
        document_uuid: uuid.UUID,
        after_id: str,
        block_type: BlockType = BlockType.PARAGRAPH,
        content: str = "",
        user_id=None,
        organization_id=None
    ) -> Document:
        def edit(blocks):
            block = block_tree.new_block(blocks, block_type, content)
            return block_tree.insert_after(blocks, after_id, block)
        return await self._edit_blocks(document_uuid, edit, user_id, organization_id)

    async def delete_block(self, document_uuid: uuid.UUID, block_id: str, user_id=None, organization_id=None) -> Document:
        return await self._edit_blocks(
            document_uuid, lambda blocks: block_tree.delete(blocks, block_id), user_id, organization_id
        )

    async def update_block(
        self,
        document_uuid: uuid.UUID,
        block_id: str,
        content: Optional[str] = None,
        block_type: Optional[BlockType] = None,
        user_id=None,
        organization_id=None
    ) -> Document:
        def edit(blocks):
            if content is not None:
                blocks = block_tree.set_content(blocks, block_id, content)
            if block_type is not None:
                blocks = block_tree.set_type(blocks, block_id, block_type)
            return blocks
        return await self._edit_blocks(document_uuid, edit, user_id, organization_id)

    async def toggle_block(self, document_uuid: uuid.UUID, block_id: str, user_id=None, organization_id=None) -> Document:
        return await self._edit_blocks(
            document_uuid, lambda blocks: block_tree.toggle_todo_in(blocks, block_id), user_id, organization_id
        )

    async def press_key(
        self,
        document_uuid: uuid.UUID,
        block_id: str,
        key: str,
        shift: bool = False,
        user_id=None,
        organization_id=None
    ) -> KeyOutcome:
        """Apply the editor keyboard protocol and persist the resulting tree"""
        document = await self.get_document(document_uuid, organization_id)
        outcome = block_tree.handle_key(document.blocks, block_id, key, shift)
        if outcome.blocks != document.blocks:
            document.apply({"blocks": outcome.blocks})
            document = await self.save_document(document, user_id)
        return KeyOutcome(document.blocks, outcome.focus_id, outcome.show_type_menu)

    # Smart links

    async def suggest_links(
        self,
        document_uuid: uuid.UUID,
        block_id: str,
        organization_id: Optional[uuid.UUID] = None
    ) -> LinkSuggestions:
        """Link candidates for one block, matched against the other documents' titles"""
        document = await self.get_document(document_uuid, organization_id)
        block = block_tree.find_block(document.blocks, block_id)
        if block is None:
            return detect_links("", [])

        titles = [
            ref.title for ref in await self.list_titles(document.organization_id)
            if ref.id != str(document.uuid)
        ]
        return detect_links(block.content, titles)

    async def link_block(
        self,
        document_uuid: uuid.UUID,
        block_id: str,
        anchor_text: str,
        target_id: uuid.UUID,
        offset: Optional[int] = None,
        user_id=None,
        organization_id=None
    ) -> Document:
        """Rewrite ``anchor_text`` in a block into a link to ``target_id``"""
        document = await self.get_document(document_uuid, organization_id)
        await self.get_document(target_id, document.organization_id)

        def edit(blocks):
            block = block_tree.find_block(blocks, block_id)
            if block is None:
                return blocks
            content = apply_link(block.content, anchor_text, target_id, offset)
            return block_tree.set_content(blocks, block_id, content)
        return await self._edit_blocks(document_uuid, edit, user_id, organization_id)


class DocumentVersionService:
    """Version history: append, list, compare, navigate and restore"""

    def __init__(
        self,
        session: AsyncSession,
        thumbnail_renderer: Optional[ThumbnailRenderer] = None,
        locks: VersionLocks = version_locks
    ):
        self.session = session
        self.version_repository = DocumentVersionRepository(session)
        self.document_repository = DocumentRepository(session)
        self.thumbnail_renderer = thumbnail_renderer or default_thumbnail_renderer()
        self.locks = locks

    async def _require_document(self, document_uuid: uuid.UUID, organization_id=None) -> Document:
        document = await self.document_repository.get_by_uuid(document_uuid)
        if not document or (organization_id and document.organization_id != organization_id):
            raise DocumentNotFoundError(f"Document {document_uuid} not found")
        return document

    async def create_version(
        self,
        document_uuid: uuid.UUID,
        snapshot: Snapshot,
        created_by: Optional[uuid.UUID] = None
    ) -> DocumentVersion:
        """Append a version; the number is the current count plus one"""
        async with self.locks.for_document(document_uuid):
            count = await self.version_repository.count_by_document(document_uuid)
            version = DocumentVersion.create_version(
                document_id=document_uuid,
                version_number=count + 1,
                snapshot=snapshot,
                created_by=created_by
            )
            created = await self.version_repository.create(version)

        logger.info(f"Version {created.version_number} recorded for document {document_uuid}")
        return created

    async def create_version_for(
        self,
        document_uuid: uuid.UUID,
        snapshot: Snapshot,
        created_by: Optional[uuid.UUID] = None,
        organization_id: Optional[uuid.UUID] = None
    ) -> DocumentVersion:
        """Explicit append for an existing document"""
        await self._require_document(document_uuid, organization_id)
        return await self.create_version(document_uuid, snapshot, created_by)

    async def record_version(self, document: Document, created_by: Optional[uuid.UUID] = None) -> Optional[DocumentVersion]:
        """Best-effort append after a successful save; never raises"""
        try:
            thumbnail = await capture_thumbnail(
                self.thumbnail_renderer,
                document.title,
                document.blocks,
                settings.thumbnail_timeout_seconds
            )
            return await self.create_version(document.uuid, document.snapshot(thumbnail), created_by)
        except Exception:
            logger.exception(f"Could not record a version for document {document.uuid}")
            return None

    async def list_versions(self, document_uuid: uuid.UUID, organization_id=None) -> List[DocumentVersion]:
        """All versions, oldest first; empty when the document was never saved"""
        await self._require_document(document_uuid, organization_id)
        return await self.version_repository.list_by_document(document_uuid)

    async def get_version(self, document_uuid: uuid.UUID, version_uuid: uuid.UUID, organization_id=None) -> DocumentVersion:
        await self._require_document(document_uuid, organization_id)
        version = await self.version_repository.get_by_uuid(document_uuid, version_uuid)
        if not version:
            raise VersionNotFoundError(f"Version {version_uuid} not found")
        return version

    async def compare_versions(
        self,
        document_uuid: uuid.UUID,
        from_version: int,
        to_version: Optional[int] = None,
        organization_id=None
    ) -> SnapshotDiff:
        """Diff two versions by number; without ``to_version`` compare with the live document"""
        document = await self._require_document(document_uuid, organization_id)

        older = await self.version_repository.get_by_number(document_uuid, from_version)
        if not older:
            raise VersionNotFoundError(f"Version {from_version} not found")

        if to_version is None:
            return diff_snapshots(older.snapshot, document.snapshot())

        newer = await self.version_repository.get_by_number(document_uuid, to_version)
        if not newer:
            raise VersionNotFoundError(f"Version {to_version} not found")
        return diff_snapshots(older.snapshot, newer.snapshot)

    async def time_machine(self, document_uuid: uuid.UUID, organization_id=None) -> TimeMachine:
        document = await self._require_document(document_uuid, organization_id)
        versions = await self.version_repository.list_by_document(document_uuid)
        return TimeMachine(versions, live=document.snapshot())

    async def restore_version(
        self,
        document_uuid: uuid.UUID,
        version_uuid: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        organization_id: Optional[uuid.UUID] = None
    ) -> Document:
        """Restore a version into the live document through a normal save.

        The save appends a new version, so history stays append-only across
        restores. A malformed snapshot raises SnapshotError before anything
        is written.
        """
        document = await self._require_document(document_uuid, organization_id)
        versions = await self.version_repository.list_by_document(document_uuid)

        machine = TimeMachine(versions, live=document.snapshot())
        version = machine.select_version(version_uuid)
        machine.restore(document)

        logger.info(f"Restoring document {document_uuid} to version {version.version_number}")
        document_service = DocumentService(self.session, self.thumbnail_renderer, self.locks)
        return await document_service.save_document(document, user_id)
