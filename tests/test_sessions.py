"""
Tests for session endpoints.
"""

import pytest

from chatstream.agent import MediaItem
from chatstream.db import Role
from conftest import stored_turns


@pytest.mark.asyncio
async def test_create_session_defaults(client):
    """POST /sessions should create an empty active session with defaults."""
    response = await client.post("/sessions", json={})

    assert response.status_code == 200
    data = response.json()
    assert "id" in data
    assert data["title"] == "New chat"
    assert data["active"] is True
    assert data["model_id"] == "test-model"
    assert data["turn_count"] == 0
    assert "created_at" in data
    assert "updated_at" in data


@pytest.mark.asyncio
async def test_create_session_with_title_and_model(client):
    """POST /sessions should honour a supplied title and model."""
    response = await client.post("/sessions", json={"title": "Test Session", "model": "other"})

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Test Session"
    assert data["model_id"] == "other"


@pytest.mark.asyncio
async def test_list_sessions_empty(client):
    """GET /sessions should return an empty first page when no sessions."""
    response = await client.get("/sessions")

    assert response.status_code == 200
    assert response.json() == {
        "content": [],
        "page": 0,
        "size": 10,
        "total_elements": 0,
        "total_pages": 0,
        "first": True,
        "last": True,
    }


@pytest.mark.asyncio
async def test_list_sessions_with_data(client):
    """GET /sessions should return all sessions."""
    await client.post("/sessions", json={"title": "Session 1"})
    await client.post("/sessions", json={"title": "Session 2"})

    response = await client.get("/sessions")

    assert response.status_code == 200
    data = response.json()
    assert data["total_elements"] == 2
    titles = {s["title"] for s in data["content"]}
    assert titles == {"Session 1", "Session 2"}


@pytest.mark.asyncio
async def test_list_sessions_pagination(client):
    """GET /sessions should split results into zero-based pages."""
    for i in range(3):
        await client.post("/sessions", json={"title": f"Session {i}"})

    first = (await client.get("/sessions", params={"page": 0, "size": 2})).json()
    second = (await client.get("/sessions", params={"page": 1, "size": 2})).json()

    assert len(first["content"]) == 2
    assert first["total_pages"] == 2
    assert first["first"] is True
    assert first["last"] is False
    assert len(second["content"]) == 1
    assert second["first"] is False
    assert second["last"] is True
    ids = {s["id"] for s in first["content"]} | {s["id"] for s in second["content"]}
    assert len(ids) == 3


@pytest.mark.asyncio
async def test_list_sessions_most_recently_updated_first(client, writer):
    """A session that just received a turn should be listed first."""
    older = (await client.post("/sessions", json={"title": "Older"})).json()
    await client.post("/sessions", json={"title": "Newer"})

    await writer.append_turn(older["id"], Role.USER, "bump")

    data = (await client.get("/sessions")).json()
    assert data["content"][0]["id"] == older["id"]


@pytest.mark.asyncio
async def test_list_sessions_active_only(client):
    """activeOnly=true must never return archived sessions."""
    kept = (await client.post("/sessions", json={"title": "Kept"})).json()
    archived = (await client.post("/sessions", json={"title": "Archived"})).json()
    await client.post(f"/sessions/{archived['id']}/archive")

    active = (await client.get("/sessions", params={"activeOnly": "true"})).json()
    default = (await client.get("/sessions")).json()
    everything = (await client.get("/sessions", params={"activeOnly": "false"})).json()

    assert [s["id"] for s in active["content"]] == [kept["id"]]
    assert all(s["active"] for s in active["content"])
    assert [s["id"] for s in default["content"]] == [kept["id"]]
    assert everything["total_elements"] == 2


@pytest.mark.asyncio
async def test_list_sessions_includes_archived_when_requested(client):
    """GET /sessions?activeOnly=false should list an archived session."""
    session_id = (await client.post("/sessions", json={})).json()["id"]
    await client.post(f"/sessions/{session_id}/archive")

    data = (await client.get("/sessions", params={"activeOnly": "false"})).json()

    assert data["total_elements"] == 1
    assert data["content"][0]["id"] == session_id
    assert data["content"][0]["active"] is False


@pytest.mark.asyncio
async def test_get_session_detail(client):
    """GET /sessions/{id} should return the session."""
    create_response = await client.post("/sessions", json={"title": "Detail Test"})
    session_id = create_response.json()["id"]

    response = await client.get(f"/sessions/{session_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == session_id
    assert data["title"] == "Detail Test"


@pytest.mark.asyncio
async def test_get_session_not_found(client):
    """GET /sessions/{id} should return 404 for invalid ID."""
    response = await client.get("/sessions/nonexistent-id")

    assert response.status_code == 404
    assert response.json()["detail"] == "Session not found"


@pytest.mark.asyncio
async def test_rename_session(client):
    """PATCH /sessions/{id} should update the title."""
    session_id = (await client.post("/sessions", json={})).json()["id"]

    response = await client.patch(f"/sessions/{session_id}", json={"title": "Renamed"})

    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"


@pytest.mark.asyncio
async def test_rename_session_rejects_blank_title(client):
    session_id = (await client.post("/sessions", json={})).json()["id"]

    response = await client.patch(f"/sessions/{session_id}", json={"title": "   "})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_rename_missing_session(client):
    response = await client.patch("/sessions/nope", json={"title": "x"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_archive_keeps_turns(client, writer):
    """Archiving flips the active flag and leaves turns untouched."""
    session_id = (await client.post("/sessions", json={})).json()["id"]
    await writer.append_turn(session_id, Role.USER, "question")
    await writer.append_turn(session_id, Role.ASSISTANT, "answer")

    response = await client.post(f"/sessions/{session_id}/archive")

    assert response.status_code == 200
    data = response.json()
    assert data["active"] is False
    assert data["turn_count"] == 2
    turns = (await client.get(f"/sessions/{session_id}/turns")).json()["content"]
    assert [t["content"] for t in turns] == ["question", "answer"]


@pytest.mark.asyncio
async def test_delete_session_removes_turns_and_files(client, writer, blobs, session_factory):
    """DELETE /sessions/{id} removes the session, its turns and attachment bytes."""
    session_id = (await client.post("/sessions", json={})).json()["id"]
    turn = await writer.append_turn(
        session_id,
        Role.USER,
        "see attached",
        [MediaItem("photo.png", "image/png", b"\x89PNG data")],
    )
    blob_path = blobs.root / turn.attachments[0].data_ref
    assert blob_path.exists()

    response = await client.delete(f"/sessions/{session_id}")

    assert response.status_code == 204
    assert (await client.get(f"/sessions/{session_id}")).status_code == 404
    assert await stored_turns(session_factory, session_id) == []
    assert not blob_path.exists()


@pytest.mark.asyncio
async def test_delete_missing_session(client):
    response = await client.delete("/sessions/nope")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_turns_oldest_first(client, writer):
    """GET /sessions/{id}/turns pages turns in sequence order."""
    session_id = (await client.post("/sessions", json={})).json()["id"]
    for i in range(5):
        await writer.append_turn(session_id, Role.USER if i % 2 == 0 else Role.ASSISTANT, f"t{i}")

    first = (await client.get(f"/sessions/{session_id}/turns", params={"size": 3})).json()
    second = (
        await client.get(f"/sessions/{session_id}/turns", params={"page": 1, "size": 3})
    ).json()

    assert [t["content"] for t in first["content"]] == ["t0", "t1", "t2"]
    assert [t["sequence_number"] for t in first["content"]] == [1, 2, 3]
    assert [t["content"] for t in second["content"]] == ["t3", "t4"]
    assert first["total_elements"] == 5
    assert first["total_pages"] == 2
    assert second["last"] is True
    assert first["content"][1]["role"] == "assistant"


@pytest.mark.asyncio
async def test_list_turns_hides_blob_reference(client, writer):
    session_id = (await client.post("/sessions", json={})).json()["id"]
    await writer.append_turn(
        session_id, Role.USER, "doc", [MediaItem("notes.txt", "text/plain", b"hello")]
    )

    turn = (await client.get(f"/sessions/{session_id}/turns")).json()["content"][0]

    assert turn["attachments"] == [{"filename": "notes.txt", "content_type": "text/plain"}]


@pytest.mark.asyncio
async def test_list_turns_missing_session(client):
    response = await client.get("/sessions/nope/turns")

    assert response.status_code == 404
