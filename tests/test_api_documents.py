"""Tests for the HTTP API."""

import uuid

import pytest


async def create(client, headers, **payload):
    response = await client.post("/documents", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_requires_token(client):
    response = await client.get("/documents")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_rejects_invalid_token(client):
    response = await client.get("/documents", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_templates(client):
    response = await client.get("/templates")
    assert response.status_code == 200
    ids = [template["id"] for template in response.json()]
    assert "meeting-notes" in ids


@pytest.mark.asyncio
async def test_create_and_get_document(client, headers, acting):
    created = await create(client, headers, title="Test", blocks=[{"id": "p1", "content": "hello"}])
    assert created["title"] == "Test"
    assert created["is_owner"] is True
    assert created["word_count"] == 1
    assert created["organization_id"] == str(acting.organization_id)

    response = await client.get(f"/documents/{created['uuid']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["blocks"][0]["id"] == "p1"


@pytest.mark.asyncio
async def test_create_rejects_duplicate_block_ids(client, headers):
    response = await client.post(
        "/documents",
        json={"blocks": [{"id": "a"}, {"id": "a"}]},
        headers=headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_with_unknown_template(client, headers):
    response = await client.post("/documents", json={"template_id": "nope"}, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_other_organization_cannot_read(client, headers, other_headers):
    created = await create(client, headers, title="Private")
    response = await client.get(f"/documents/{created['uuid']}", headers=other_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_missing_document(client, headers):
    response = await client.get(f"/documents/{uuid.uuid4()}", headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_records_version(client, headers):
    created = await create(client, headers, title="Test", blocks=[{"id": "p1", "content": "hi"}])
    doc_id = created["uuid"]

    response = await client.put(f"/documents/{doc_id}", json={"title": "Test2"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["title"] == "Test2"

    versions = (await client.get(f"/documents/{doc_id}/versions", headers=headers)).json()
    assert versions["total"] == 1
    assert versions["versions"][0]["version_number"] == 1
    assert versions["versions"][0]["title"] == "Test2"


@pytest.mark.asyncio
async def test_update_rejects_blank_title(client, headers):
    created = await create(client, headers, title="Test")
    response = await client.put(f"/documents/{created['uuid']}", json={"title": "   "}, headers=headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_favorite_and_starred_lists(client, headers):
    created = await create(client, headers, title="Fav")
    await create(client, headers, title="Plain")

    response = await client.post(f"/documents/{created['uuid']}/favorite", headers=headers)
    assert response.json()["is_favorite"] is True
    response = await client.post(f"/documents/{created['uuid']}/star", headers=headers)
    assert response.json()["is_starred"] is True

    favorites = (await client.get("/documents/favorites", headers=headers)).json()
    assert [doc["title"] for doc in favorites["documents"]] == ["Fav"]
    starred = (await client.get("/documents/starred", headers=headers)).json()
    assert starred["total"] == 1
    everything = (await client.get("/documents", headers=headers)).json()
    assert everything["total"] == 2


@pytest.mark.asyncio
async def test_titles_and_search(client, headers):
    await create(client, headers, title="Project Alpha")
    await create(client, headers, title="Roadmap")

    titles = (await client.get("/documents/titles", headers=headers)).json()
    assert {entry["title"] for entry in titles} == {"Project Alpha", "Roadmap"}

    found = (await client.get("/documents/search", params={"q": "ALPHA"}, headers=headers)).json()
    assert [entry["title"] for entry in found] == ["Project Alpha"]


@pytest.mark.asyncio
async def test_block_endpoints(client, headers):
    created = await create(client, headers, blocks=[{"id": "p1", "content": ""}])
    base = f"/documents/{created['uuid']}/blocks"

    response = await client.post(
        f"{base}/p1/insert-after", json={"type": "todo-list", "content": "[ ] buy milk"}, headers=headers
    )
    assert response.status_code == 200
    todo = response.json()["blocks"][1]
    assert todo["type"] == "todo-list"

    response = await client.post(f"{base}/{todo['id']}/toggle", headers=headers)
    assert response.json()["blocks"][1]["content"] == "[x] buy milk"
    assert response.json()["blocks"][1]["done"] is True

    response = await client.patch(f"{base}/p1", json={"content": "Intro", "type": "heading-1"}, headers=headers)
    assert response.json()["blocks"][0]["type"] == "heading-1"

    response = await client.delete(f"{base}/{todo['id']}", headers=headers)
    assert [b["id"] for b in response.json()["blocks"]] == ["p1"]

    # The last block is kept
    response = await client.delete(f"{base}/p1", headers=headers)
    assert [b["id"] for b in response.json()["blocks"]] == ["p1"]


@pytest.mark.asyncio
async def test_key_endpoint(client, headers):
    created = await create(client, headers, blocks=[{"id": "p1", "content": "text"}])
    base = f"/documents/{created['uuid']}/blocks"

    response = await client.post(f"{base}/p1/keys", json={"key": "Enter"}, headers=headers)
    body = response.json()
    assert response.status_code == 200
    new_id = body["focus_id"]
    assert [b["id"] for b in body["document"]["blocks"]] == ["p1", new_id]

    response = await client.post(f"{base}/{new_id}/keys", json={"key": "/"}, headers=headers)
    assert response.json()["show_type_menu"] is True

    response = await client.post(f"{base}/{new_id}/keys", json={"key": "Backspace"}, headers=headers)
    body = response.json()
    assert body["focus_id"] == "p1"
    assert [b["id"] for b in body["document"]["blocks"]] == ["p1"]


@pytest.mark.asyncio
async def test_link_flow(client, headers):
    target = await create(client, headers, title="Roadmap")
    page = await create(client, headers, title="Notes", blocks=[{"id": "b1", "content": "See the Roadmap"}])
    base = f"/documents/{page['uuid']}/blocks/b1"

    suggestions = (await client.get(f"{base}/link-suggestions", headers=headers)).json()
    assert suggestions["candidates"] == [{"text": "Roadmap", "kind": "exact"}]

    response = await client.post(
        f"{base}/links",
        json={"anchor_text": "Roadmap", "target_id": target["uuid"], "offset": 8},
        headers=headers
    )
    assert response.status_code == 200
    assert response.json()["blocks"][0]["content"] == f"See the [Roadmap](/documents/{target['uuid']})"

    backlinks = (await client.get(f"/documents/{target['uuid']}/backlinks", headers=headers)).json()
    assert [entry["uuid"] for entry in backlinks] == [page["uuid"]]


@pytest.mark.asyncio
async def test_link_to_missing_document(client, headers):
    page = await create(client, headers, blocks=[{"id": "b1", "content": "See the Roadmap"}])
    response = await client.post(
        f"/documents/{page['uuid']}/blocks/b1/links",
        json={"anchor_text": "Roadmap", "target_id": str(uuid.uuid4())},
        headers=headers
    )
    assert response.status_code == 404
