"""
Voice upload, transcription, amplification and carousel endpoint tests
"""

import pytest
from unittest.mock import AsyncMock
from api.dependencies import get_llm_client, get_storage, get_transcriber
from api.main import app
from core.config import settings
from core.exceptions import TranscriptionError
from integrations.assemblyai import TranscriptResult
from integrations.openrouter import GenerationResult
from integrations.storage import LocalAudioStorage
from models import Carousel


@pytest.fixture
def storage(tmp_path):
    storage = LocalAudioStorage(str(tmp_path))
    app.dependency_overrides[get_storage] = lambda: storage
    return storage


@pytest.fixture
def transcriber():
    transcriber = AsyncMock()
    transcriber.transcribe_audio.return_value = TranscriptResult(
        transcript_id="t-1",
        text="Small changes compound. Ship them every day.",
        confidence=0.9,
    )
    app.dependency_overrides[get_transcriber] = lambda: transcriber
    return transcriber


@pytest.fixture
def llm():
    llm = AsyncMock()
    llm.generate_post_variations.return_value = GenerationResult(
        variations=[f"Post {i}" for i in range(5)],
        model="anthropic/claude-3.5-sonnet",
    )
    llm.generate_carousel.return_value = [
        {"slide_number": i, "title": f"Slide {i}", "body": "Body", "key_point": None}
        for i in range(1, 8)
    ]
    app.dependency_overrides[get_llm_client] = lambda: llm
    return llm


async def upload(api_client, headers, content_type="audio/webm", data=b"voice-bytes", duration="30"):
    return await api_client.post(
        "/voice/upload",
        files={"audio": ("note.webm", data, content_type)},
        data={"duration": duration},
        headers=headers,
    )


# ============================================================================
# Voice
# ============================================================================

@pytest.mark.asyncio
async def test_upload_stores_file_and_recording(api_client, auth, storage, make_user, make_workspace):
    user = await make_user()
    workspace = await make_workspace(user)

    response = await upload(api_client, auth(user, workspace))

    assert response.status_code == 201
    recording = response.json()["recording"]
    assert recording["status"] == "uploaded"
    assert recording["mime_type"] == "audio/webm"
    assert recording["file_size_bytes"] == len(b"voice-bytes")
    assert recording["storage_path"].startswith(f"{workspace.id}/voice-recordings/{user.id}/")
    assert storage.read(recording["storage_path"]) == b"voice-bytes"

    listed = await api_client.get("/voice", headers=auth(user, workspace))
    assert [r["id"] for r in listed.json()] == [recording["id"]]


@pytest.mark.asyncio
async def test_upload_rejects_unsupported_type(api_client, auth, storage, make_user, make_workspace):
    user = await make_user()
    workspace = await make_workspace(user)

    response = await upload(api_client, auth(user, workspace), content_type="application/pdf")

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid file type")


@pytest.mark.asyncio
async def test_upload_rejects_oversized_file(api_client, auth, storage, make_user, make_workspace, monkeypatch):
    monkeypatch.setattr(settings, "MAX_AUDIO_SIZE_BYTES", 8)
    user = await make_user()
    workspace = await make_workspace(user)

    response = await upload(api_client, auth(user, workspace), data=b"x" * 64)

    assert response.status_code == 400
    assert response.json()["error"].startswith("File too large")
    listed = await api_client.get("/voice", headers=auth(user, workspace))
    assert listed.json() == []


@pytest.mark.asyncio
async def test_recordings_are_scoped_to_current_workspace(api_client, auth, storage, make_user, make_workspace):
    user = await make_user()
    home = await make_workspace(user, "Home")
    other = await make_workspace(user, "Other")
    recording = (await upload(api_client, auth(user, home))).json()["recording"]

    fetched = await api_client.get(f"/voice/{recording['id']}", headers=auth(user, other))
    deleted = await api_client.delete(f"/voice/{recording['id']}", headers=auth(user, other))

    assert fetched.status_code == 404
    assert deleted.status_code == 404
    assert storage.read(recording["storage_path"]) == b"voice-bytes"
    still_there = await api_client.get(f"/voice/{recording['id']}", headers=auth(user, home))
    assert still_there.status_code == 200


@pytest.mark.asyncio
async def test_transcribe_then_fetch_recording(api_client, auth, storage, transcriber, make_user, make_workspace):
    user = await make_user()
    workspace = await make_workspace(user)
    recording_id = (await upload(api_client, auth(user, workspace))).json()["recording"]["id"]

    first = await api_client.post("/voice/transcribe", json={"recording_id": recording_id}, headers=auth(user))
    second = await api_client.post("/voice/transcribe", json={"recording_id": recording_id}, headers=auth(user))

    assert first.status_code == 200
    assert first.json()["already_transcribed"] is False
    assert first.json()["transcription"]["word_count"] == 7
    assert second.json()["already_transcribed"] is True
    assert transcriber.transcribe_audio.await_count == 1

    fetched = await api_client.get(f"/voice/{recording_id}", headers=auth(user))
    assert fetched.json()["recording"]["status"] == "transcribed"
    assert fetched.json()["transcription"]["raw_text"] == "Small changes compound. Ship them every day."
    assert workspace.credits_remaining == 99


@pytest.mark.asyncio
async def test_transcription_failure_returns_error(api_client, auth, storage, transcriber, make_user, make_workspace):
    user = await make_user()
    workspace = await make_workspace(user)
    recording_id = (await upload(api_client, auth(user, workspace))).json()["recording"]["id"]
    transcriber.transcribe_audio.side_effect = TranscriptionError("audio too noisy")

    response = await api_client.post("/voice/transcribe", json={"recording_id": recording_id}, headers=auth(user))

    assert response.status_code == 500
    assert response.json() == {"error": "Transcription failed: audio too noisy"}
    fetched = await api_client.get(f"/voice/{recording_id}", headers=auth(user))
    assert fetched.json()["recording"]["status"] == "failed"


@pytest.mark.asyncio
async def test_edit_transcription_text(api_client, auth, make_user, make_workspace, make_transcription):
    user = await make_user()
    transcription = await make_transcription(user, await make_workspace(user))

    response = await api_client.patch(
        f"/transcriptions/{transcription.id}",
        json={"processed_text": "Cleaned up text"},
        headers=auth(user),
    )
    empty = await api_client.patch(f"/transcriptions/{transcription.id}", json={"processed_text": " "}, headers=auth(user))

    assert response.status_code == 200
    assert response.json()["processed_text"] == "Cleaned up text"
    assert response.json()["word_count"] == 3
    assert empty.status_code == 400


@pytest.mark.asyncio
async def test_delete_recording_removes_file(api_client, auth, storage, make_user, make_workspace):
    user = await make_user()
    workspace = await make_workspace(user)
    recording = (await upload(api_client, auth(user, workspace))).json()["recording"]

    response = await api_client.delete(f"/voice/{recording['id']}", headers=auth(user))

    assert response.status_code == 200
    assert not (storage.base_dir / recording["storage_path"]).exists()
    missing = await api_client.get(f"/voice/{recording['id']}", headers=auth(user))
    assert missing.status_code == 404


# ============================================================================
# Amplification
# ============================================================================

@pytest.mark.asyncio
async def test_amplify_returns_job_and_posts(api_client, auth, llm, make_user, make_workspace, make_transcription):
    user = await make_user()
    transcription = await make_transcription(user, await make_workspace(user))

    response = await api_client.post("/amplify", json={"transcription_id": str(transcription.id)}, headers=auth(user))

    assert response.status_code == 200
    data = response.json()
    assert data["job"]["status"] == "completed"
    assert data["job"]["completed_variations"] == 5
    assert [p["variation_type"] for p in data["posts"]] == ["professional", "personal", "actionable", "discussion", "bold"]

    variations = await api_client.get(f"/posts?transcription_id={transcription.id}", headers=auth(user))
    assert [p["content"] for p in variations.json()] == [f"Post {i}" for i in range(5)]


@pytest.mark.asyncio
async def test_amplify_rejects_unknown_variation_type(api_client, auth, llm, make_user, make_workspace, make_transcription):
    user = await make_user()
    transcription = await make_transcription(user, await make_workspace(user))

    response = await api_client.post(
        "/amplify",
        json={"transcription_id": str(transcription.id), "variation_type": "sarcastic"},
        headers=auth(user),
    )

    assert response.status_code == 400
    llm.generate_post_variations.assert_not_called()


@pytest.mark.asyncio
async def test_amplify_without_credits_is_payment_required(api_client, auth, llm, make_user, make_workspace, make_transcription):
    user = await make_user()
    transcription = await make_transcription(user, await make_workspace(user, credits_remaining=0))

    response = await api_client.post("/amplify", json={"transcription_id": str(transcription.id)}, headers=auth(user))

    assert response.status_code == 402
    assert response.json() == {"error": "Insufficient credits"}


@pytest.mark.asyncio
async def test_amplify_unknown_transcription_is_not_found(api_client, auth, llm, make_user):
    user = await make_user()

    response = await api_client.post(
        "/amplify",
        json={"transcription_id": "00000000-0000-0000-0000-000000000000"},
        headers=auth(user),
    )

    assert response.status_code == 404


# ============================================================================
# Carousels
# ============================================================================

@pytest.mark.asyncio
async def test_carousel_generate_edit_and_delete(api_client, auth, llm, make_user, make_workspace, make_transcription):
    user = await make_user()
    workspace = await make_workspace(user)
    transcription = await make_transcription(user, workspace)

    created = await api_client.post(
        "/amplify/carousel",
        json={"transcription_id": str(transcription.id), "template_type": "story"},
        headers=auth(user),
    )
    assert created.status_code == 201
    carousel = created.json()
    assert carousel["template_type"] == "story"
    assert len(carousel["slide_data"]) == 7
    assert carousel["credits_used"] == 10

    listed = await api_client.get("/carousels", headers=auth(user, workspace))
    assert [c["id"] for c in listed.json()] == [carousel["id"]]

    edited = await api_client.patch(
        f"/carousels/{carousel['id']}",
        json={"slide_data": [{"title": "B", "body": "two"}, {"title": "A", "body": "one"}], "status": "ready"},
        headers=auth(user),
    )
    assert edited.status_code == 200
    assert [(s["slide_number"], s["title"]) for s in edited.json()["slide_data"]] == [(1, "B"), (2, "A")]
    assert edited.json()["status"] == "ready"

    empty = await api_client.patch(f"/carousels/{carousel['id']}", json={"slide_data": []}, headers=auth(user))
    nothing = await api_client.patch(f"/carousels/{carousel['id']}", json={}, headers=auth(user))
    assert empty.status_code == 400
    assert nothing.json() == {"error": "No valid fields to update"}

    deleted = await api_client.delete(f"/carousels/{carousel['id']}", headers=auth(user))
    assert deleted.status_code == 200
    missing = await api_client.get(f"/carousels/{carousel['id']}", headers=auth(user))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_carousels_are_private_to_their_creator(api_client, auth, db_session, make_user, make_workspace, make_transcription):
    owner = await make_user()
    other = await make_user()
    workspace = await make_workspace(owner)
    carousel = Carousel(workspace_id=workspace.id, user_id=owner.id, slide_data=[])
    db_session.add(carousel)
    await db_session.commit()

    response = await api_client.get(f"/carousels/{carousel.id}", headers=auth(other))

    assert response.status_code == 404
    assert response.json() == {"error": "Carousel not found"}
