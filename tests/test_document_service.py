"""Tests for the document aggregate services."""

import asyncio
import base64
import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import ActingSession
from app.core.config import settings
from app.core.exceptions import DocumentNotFoundError, SnapshotError, VersionNotFoundError
from app.db.repositories import DocumentVersionRepository
from app.domains.documents.blocks import Block, BlockType
from app.domains.documents.entities import DocumentVersion
from app.domains.documents.links import CandidateKind
from app.domains.documents.services import DocumentService, DocumentVersionService
from app.domains.documents.thumbnails import render_svg_thumbnail


@pytest_asyncio.fixture
async def service(db: AsyncSession) -> DocumentService:
    return DocumentService(db)


@pytest_asyncio.fixture
async def document(service: DocumentService, acting: ActingSession):
    return await service.create_document(
        acting.user_id,
        acting.organization_id,
        title="Test",
        blocks=[Block(id="p1", content="hello world")]
    )


# ---------------------------------------------------------------------------
# Creation and reads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_defaults(service: DocumentService, acting: ActingSession):
    created = await service.create_document(acting.user_id, acting.organization_id)
    assert created.title == settings.default_document_title
    assert len(created.blocks) == 1
    assert created.blocks[0].type == BlockType.PARAGRAPH


@pytest.mark.asyncio
async def test_create_does_not_record_a_version(service: DocumentService, document, acting):
    versions = await service.version_service.list_versions(document.uuid)
    assert versions == []


@pytest.mark.asyncio
async def test_create_from_template(service: DocumentService, acting: ActingSession):
    created = await service.create_document(
        acting.user_id, acting.organization_id, template_id="meeting-notes"
    )
    assert created.title == "Meeting notes"
    assert created.emoji == "📄"
    assert [b.type for b in created.blocks] == [BlockType.HEADING_1, BlockType.PARAGRAPH]


@pytest.mark.asyncio
async def test_create_from_unknown_template(service: DocumentService, acting: ActingSession):
    with pytest.raises(ValueError):
        await service.create_document(acting.user_id, acting.organization_id, template_id="nope")


@pytest.mark.asyncio
async def test_get_missing_document(service: DocumentService):
    with pytest.raises(DocumentNotFoundError):
        await service.get_document(uuid.uuid4())


@pytest.mark.asyncio
async def test_get_document_from_other_organization(service: DocumentService, document, other_org):
    with pytest.raises(DocumentNotFoundError):
        await service.get_document(document.uuid, other_org.organization_id)


@pytest.mark.asyncio
async def test_list_filters(service: DocumentService, document, acting: ActingSession):
    await service.toggle_favorite(document.uuid, acting.user_id)
    await service.create_document(acting.user_id, acting.organization_id, title="Other")

    assert len(await service.list_documents(acting.organization_id)) == 2
    favorites = await service.list_documents(acting.organization_id, favorites_only=True)
    assert [doc.uuid for doc in favorites] == [document.uuid]
    assert await service.list_documents(acting.organization_id, starred_only=True) == []


@pytest.mark.asyncio
async def test_search_documents(service: DocumentService, document, acting: ActingSession):
    await service.create_document(acting.user_id, acting.organization_id, title="Roadmap")
    found = await service.search_documents(acting.organization_id, "road")
    assert [ref.title for ref in found] == ["Roadmap"]
    assert await service.search_documents(acting.organization_id, "  ") == []


@pytest.mark.asyncio
async def test_search_documents_matches_wildcards_literally(service: DocumentService, acting: ActingSession):
    await service.create_document(acting.user_id, acting.organization_id, title="Roadmap")
    await service.create_document(acting.user_id, acting.organization_id, title="Budget 2024")
    await service.create_document(acting.user_id, acting.organization_id, title="Growth 50% plan")
    await service.create_document(acting.user_id, acting.organization_id, title="snake_case notes")

    assert [ref.title for ref in await service.search_documents(acting.organization_id, "%")] == ["Growth 50% plan"]
    assert [ref.title for ref in await service.search_documents(acting.organization_id, "_")] == ["snake_case notes"]
    assert await service.search_documents(acting.organization_id, "\\") == []


# ---------------------------------------------------------------------------
# Saves and versions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_save_records_post_update_snapshot(service: DocumentService, document, acting):
    await service.update_document(document.uuid, {"title": "Test2"}, acting.user_id)

    versions = await service.version_service.list_versions(document.uuid)
    assert len(versions) == 1
    assert versions[0].version_number == 1
    assert versions[0].title == "Test2"
    assert versions[0].created_by == acting.user_id


@pytest.mark.asyncio
async def test_each_save_appends_next_number(service: DocumentService, document, acting):
    for n in range(4):
        await service.update_document(document.uuid, {"title": f"Title {n}"}, acting.user_id)

    versions = await service.version_service.list_versions(document.uuid)
    assert [v.version_number for v in versions] == [1, 2, 3, 4]
    assert [v.title for v in versions] == ["Title 0", "Title 1", "Title 2", "Title 3"]


@pytest.mark.asyncio
async def test_update_rejects_unknown_field(service: DocumentService, document):
    with pytest.raises(ValueError):
        await service.update_document(document.uuid, {"created_by": uuid.uuid4()})


@pytest.mark.asyncio
async def test_save_with_empty_blocks_keeps_one_block(service: DocumentService, document):
    saved = await service.update_document(document.uuid, {"blocks": []})
    assert len(saved.blocks) == 1


@pytest.mark.asyncio
async def test_version_failure_does_not_fail_save(service: DocumentService, document, monkeypatch):
    async def broken_create(version):
        raise RuntimeError("version store down")

    monkeypatch.setattr(service.version_service.version_repository, "create", broken_create)

    saved = await service.update_document(document.uuid, {"title": "Saved anyway"})
    assert saved.title == "Saved anyway"
    assert (await service.get_document(document.uuid)).title == "Saved anyway"


@pytest.mark.asyncio
async def test_failing_thumbnail_renderer_still_records_version(db: AsyncSession, document):
    async def broken_renderer(title, blocks):
        raise RuntimeError("renderer crashed")

    service = DocumentService(db, thumbnail_renderer=broken_renderer)
    await service.update_document(document.uuid, {"title": "No thumbnail"})

    versions = await service.version_service.list_versions(document.uuid)
    assert len(versions) == 1
    assert versions[0].thumbnail is None


@pytest.mark.asyncio
async def test_slow_thumbnail_renderer_times_out(db: AsyncSession, document, monkeypatch):
    async def slow_renderer(title, blocks):
        await asyncio.sleep(5)
        return "data:image/png;base64,late"

    monkeypatch.setattr(settings, "thumbnail_timeout_seconds", 0.01)
    service = DocumentService(db, thumbnail_renderer=slow_renderer)
    await service.update_document(document.uuid, {"title": "Too slow"})

    versions = await service.version_service.list_versions(document.uuid)
    assert versions[0].thumbnail is None


@pytest.mark.asyncio
async def test_default_renderer_stores_svg_thumbnail(service: DocumentService, document):
    await service.update_document(document.uuid, {"title": "With preview"})
    versions = await service.version_service.list_versions(document.uuid)
    assert versions[0].thumbnail.startswith("data:image/svg+xml;base64,")


@pytest.mark.asyncio
async def test_thumbnail_shows_todo_state():
    blocks = [
        Block(id="t1", type=BlockType.TODO_LIST, content="[x] buy milk"),
        Block(id="t2", type=BlockType.TODO_LIST, content="call Bob", done=True),
        Block(id="t3", type=BlockType.TODO_LIST, content="[ ] write notes"),
    ]
    uri = await render_svg_thumbnail("Chores", blocks)
    svg = base64.b64decode(uri.split(",", 1)[1]).decode("utf-8")

    assert "☑ buy milk" in svg
    assert "☑ call Bob" in svg
    assert "☐ write notes" in svg
    assert "[x]" not in svg


@pytest.mark.asyncio
async def test_compare_versions(service: DocumentService, document):
    await service.update_document(document.uuid, {"title": "One"})
    await service.update_block(document.uuid, "p1", content="changed")

    diff = await service.version_service.compare_versions(document.uuid, 1, 2)
    assert diff.title is None
    assert [(c.block_id, c.kind) for c in diff.blocks] == [("p1", "modified")]

    live = await service.version_service.compare_versions(document.uuid, 1)
    assert live.blocks[0].after.content == "changed"

    with pytest.raises(VersionNotFoundError):
        await service.version_service.compare_versions(document.uuid, 1, 9)


# ---------------------------------------------------------------------------
# Restore
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_restore_appends_a_new_version(service: DocumentService, document, acting):
    await service.update_document(document.uuid, {"title": "First"})
    await service.update_document(document.uuid, {"title": "Second"})
    first = (await service.version_service.list_versions(document.uuid))[0]

    restored = await service.version_service.restore_version(document.uuid, first.uuid, acting.user_id)
    assert restored.title == "First"

    versions = await service.version_service.list_versions(document.uuid)
    assert [v.version_number for v in versions] == [1, 2, 3]
    assert versions[-1].title == "First"


@pytest.mark.asyncio
async def test_restore_unknown_version(service: DocumentService, document):
    with pytest.raises(VersionNotFoundError):
        await service.version_service.restore_version(document.uuid, uuid.uuid4())


@pytest.mark.asyncio
async def test_restore_malformed_snapshot_leaves_document(db: AsyncSession, service: DocumentService, document):
    broken = DocumentVersion(
        uuid=uuid.uuid4(),
        document_id=document.uuid,
        version_number=1,
        title="Broken",
        blocks="{not a list"
    )
    await DocumentVersionRepository(db).create(broken)

    with pytest.raises(SnapshotError):
        await service.version_service.restore_version(document.uuid, broken.uuid)

    current = await service.get_document(document.uuid)
    assert current.title == "Test"
    assert [b.id for b in current.blocks] == ["p1"]
    assert len(await service.version_service.list_versions(document.uuid)) == 1


@pytest.mark.asyncio
async def test_explicit_version_append(db: AsyncSession, document, acting):
    version_service = DocumentVersionService(db)
    snapshot = document.snapshot()
    first = await version_service.create_version_for(document.uuid, snapshot, acting.user_id)
    second = await version_service.create_version_for(document.uuid, snapshot, acting.user_id)
    assert (first.version_number, second.version_number) == (1, 2)

    with pytest.raises(DocumentNotFoundError):
        await version_service.create_version_for(uuid.uuid4(), snapshot)


# ---------------------------------------------------------------------------
# Block edits
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_insert_and_delete_block(service: DocumentService, document):
    inserted = await service.insert_block_after(document.uuid, "p1", BlockType.TODO_LIST, "task")
    assert len(inserted.blocks) == 2
    assert inserted.blocks[1].type == BlockType.TODO_LIST

    deleted = await service.delete_block(document.uuid, inserted.blocks[1].id)
    assert [b.id for b in deleted.blocks] == ["p1"]


@pytest.mark.asyncio
async def test_noop_block_edit_records_no_version(service: DocumentService, document):
    await service.delete_block(document.uuid, "p1")
    await service.update_block(document.uuid, "missing", content="x")
    assert await service.version_service.list_versions(document.uuid) == []


@pytest.mark.asyncio
async def test_toggle_block(service: DocumentService, document):
    await service.update_block(document.uuid, "p1", content="[ ] buy milk", block_type=BlockType.TODO_LIST)
    toggled = await service.toggle_block(document.uuid, "p1")
    assert toggled.blocks[0].content == "[x] buy milk"
    assert toggled.blocks[0].done is True


@pytest.mark.asyncio
async def test_press_enter_persists_new_block(service: DocumentService, document):
    outcome = await service.press_key(document.uuid, "p1", "Enter")
    saved = await service.get_document(document.uuid)
    assert [b.id for b in saved.blocks] == ["p1", outcome.focus_id]


@pytest.mark.asyncio
async def test_press_slash_only_opens_menu(service: DocumentService, acting: ActingSession):
    blank = await service.create_document(acting.user_id, acting.organization_id)
    outcome = await service.press_key(blank.uuid, blank.blocks[0].id, "/")
    assert outcome.show_type_menu is True
    assert await service.version_service.list_versions(blank.uuid) == []


# ---------------------------------------------------------------------------
# Smart links
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_link_suggestions_use_other_titles(service: DocumentService, acting: ActingSession):
    await service.create_document(acting.user_id, acting.organization_id, title="Project Alpha")
    await service.create_document(acting.user_id, acting.organization_id, title="Roadmap")
    page = await service.create_document(
        acting.user_id,
        acting.organization_id,
        title="Notes",
        blocks=[Block(id="b1", content="See Project Alpha for the Roadmap details")]
    )

    suggestions = await service.suggest_links(page.uuid, "b1")
    assert sorted(suggestions.exact()) == ["Project Alpha", "Roadmap"]
    assert all(c.kind == CandidateKind.EXACT for c in suggestions)


@pytest.mark.asyncio
async def test_link_block_and_backlinks(service: DocumentService, acting: ActingSession):
    target = await service.create_document(acting.user_id, acting.organization_id, title="Roadmap")
    page = await service.create_document(
        acting.user_id,
        acting.organization_id,
        blocks=[Block(id="b1", content="the Roadmap is late")]
    )

    linked = await service.link_block(page.uuid, "b1", "Roadmap", target.uuid)
    assert linked.blocks[0].content == f"the [Roadmap](/documents/{target.uuid}) is late"
    assert linked.links() == [("Roadmap", str(target.uuid))]

    backlinks = await service.get_backlinks(target.uuid, acting.organization_id)
    assert [doc.uuid for doc in backlinks] == [page.uuid]


@pytest.mark.asyncio
async def test_backlinks_ignore_text_that_only_resembles_a_link(service: DocumentService, acting: ActingSession):
    target = await service.create_document(acting.user_id, acting.organization_id, title="Roadmap")
    await service.create_document(
        acting.user_id,
        acting.organization_id,
        blocks=[Block(id="b1", content=f"pasted ](/documents/{target.uuid}) by mistake")]
    )

    assert await service.get_backlinks(target.uuid, acting.organization_id) == []


@pytest.mark.asyncio
async def test_link_to_missing_target(service: DocumentService, document):
    with pytest.raises(DocumentNotFoundError):
        await service.link_block(document.uuid, "p1", "hello", uuid.uuid4())
