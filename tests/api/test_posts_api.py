"""
Post, draft and scheduling endpoint tests
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from sqlalchemy import select
from api.dependencies import get_linkedin_client
from api.main import app
from integrations.linkedin import LinkedInPostResult
from models import ScheduledPost, WorkspaceMember
from models.base import PostStatus, WorkspaceRole


def future(**delta):
    return (datetime.utcnow() + timedelta(**(delta or {"days": 1}))).isoformat()


@pytest.mark.asyncio
async def test_requests_without_identity_are_unauthorized(api_client):
    response = await api_client.get("/drafts")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_create_manual_post(api_client, auth, make_user, make_workspace):
    user = await make_user()
    workspace = await make_workspace(user)

    response = await api_client.post(
        "/posts",
        json={"content": "  Ship small.  Ship often. ", "title": "Cadence", "variation_type": "unknown", "tags": ["growth", " "]},
        headers=auth(user, workspace),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["content"] == "Ship small.  Ship often."
    assert data["word_count"] == 4
    assert data["status"] == "draft"
    assert data["source_type"] == "manual"
    assert data["variation_type"] == "professional"
    assert data["tags"] == ["growth"]
    assert data["workspace_id"] == str(workspace.id)


@pytest.mark.asyncio
async def test_create_post_requires_content(api_client, auth, make_user, make_workspace):
    user = await make_user()
    workspace = await make_workspace(user)

    response = await api_client.post("/posts", json={"content": "   "}, headers=auth(user, workspace))

    assert response.status_code == 400
    assert response.json() == {"error": "Content is required"}


@pytest.mark.asyncio
async def test_viewer_cannot_create_posts(api_client, auth, db_session, make_user, make_workspace):
    owner = await make_user()
    viewer = await make_user()
    workspace = await make_workspace(owner)
    db_session.add(WorkspaceMember(workspace_id=workspace.id, user_id=viewer.id, role=WorkspaceRole.VIEWER))
    await db_session.commit()

    response = await api_client.post("/posts", json={"content": "Hello"}, headers=auth(viewer, workspace))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_patch_post_recomputes_counts(api_client, auth, make_user, make_workspace, make_post):
    user = await make_user()
    workspace = await make_workspace(user)
    post = await make_post(user, workspace)

    response = await api_client.patch(
        f"/posts/{post.id}",
        json={"content": "Three words here", "tags": ["a", "b"], "ignored": True},
        headers=auth(user),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["word_count"] == 3
    assert data["character_count"] == len("Three words here")
    assert data["tags"] == ["a", "b"]


@pytest.mark.asyncio
async def test_patch_post_rejects_empty_and_invalid_updates(api_client, auth, make_user, make_workspace, make_post):
    user = await make_user()
    post = await make_post(user, await make_workspace(user))

    empty = await api_client.patch(f"/posts/{post.id}", json={"ignored": True}, headers=auth(user))
    bad_status = await api_client.patch(f"/posts/{post.id}", json={"status": "viral"}, headers=auth(user))
    bad_tags = await api_client.patch(f"/posts/{post.id}", json={"tags": "growth"}, headers=auth(user))

    assert empty.status_code == 400
    assert empty.json() == {"error": "No valid fields to update"}
    assert bad_status.status_code == 400
    assert bad_tags.status_code == 400


@pytest.mark.asyncio
async def test_other_users_posts_are_not_found(api_client, auth, make_user, make_workspace, make_post):
    owner = await make_user()
    other = await make_user()
    post = await make_post(owner, await make_workspace(owner))

    response = await api_client.get(f"/posts/{post.id}", headers=auth(other))

    assert response.status_code == 404
    assert response.json() == {"error": "Post not found"}


@pytest.mark.asyncio
async def test_drafts_pagination_and_filters(api_client, auth, make_user, make_workspace, make_post):
    user = await make_user()
    workspace = await make_workspace(user)
    await make_post(user, workspace, content="Hiring lessons", tags=["Hiring"])
    await make_post(user, workspace, content="Growth lessons", tags=["growth"])
    await make_post(user, workspace, content="Published one", status=PostStatus.PUBLISHED)

    page = await api_client.get("/drafts?limit=1", headers=auth(user))
    tagged = await api_client.get("/drafts?tags=hiring,unused", headers=auth(user))
    searched = await api_client.get("/drafts?search=growth", headers=auth(user))
    everything = await api_client.get("/drafts?status=all", headers=auth(user))

    assert page.status_code == 200
    assert len(page.json()["posts"]) == 1
    assert page.json()["pagination"] == {"page": 1, "limit": 1, "total": 2, "total_pages": 2, "has_next": True}
    assert [p["content"] for p in tagged.json()["posts"]] == ["Hiring lessons"]
    assert [p["content"] for p in searched.json()["posts"]] == ["Growth lessons"]
    assert everything.json()["pagination"]["total"] == 3


@pytest.mark.asyncio
async def test_drafts_limit_is_bounded(api_client, auth, make_user):
    user = await make_user()

    response = await api_client.get("/drafts?limit=500", headers=auth(user))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_schedule_lifecycle(api_client, auth, db_session, make_user, make_workspace, make_post):
    user = await make_user()
    workspace = await make_workspace(user)
    post = await make_post(user, workspace)
    headers = auth(user, workspace)

    past = await api_client.post(
        f"/posts/{post.id}/schedule",
        json={"scheduled_for": (datetime.utcnow() - timedelta(minutes=5)).isoformat()},
        headers=headers,
    )
    assert past.status_code == 400
    assert past.json() == {"error": "Scheduled time must be in the future"}

    created = await api_client.post(f"/posts/{post.id}/schedule", json={"scheduled_for": future()}, headers=headers)
    assert created.status_code == 201
    assert created.json()["notification_method"] == "email"
    assert created.json()["posted"] is False

    duplicate = await api_client.post(f"/posts/{post.id}/schedule", json={"scheduled_for": future()}, headers=headers)
    assert duplicate.status_code == 409

    moved = await api_client.patch(
        f"/posts/{post.id}/schedule",
        json={"scheduled_for": future(days=3), "notification_method": "both"},
        headers=headers,
    )
    assert moved.status_code == 200
    assert moved.json()["notification_method"] == "both"

    fetched = await api_client.get(f"/posts/{post.id}", headers=headers)
    assert fetched.json()["status"] == "scheduled"

    cancelled = await api_client.delete(f"/posts/{post.id}/schedule", headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["post"]["status"] == "draft"
    assert cancelled.json()["post"]["scheduled_at"] is None

    missing = await api_client.get(f"/posts/{post.id}/schedule", headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_schedule_accepts_timezone_offsets(api_client, auth, make_user, make_workspace, make_post):
    user = await make_user()
    workspace = await make_workspace(user)
    post = await make_post(user, workspace)

    response = await api_client.post(
        f"/posts/{post.id}/schedule",
        json={"scheduled_for": "2099-06-01T12:00:00+02:00"},
        headers=auth(user, workspace),
    )

    assert response.status_code == 201
    assert response.json()["scheduled_for"] == "2099-06-01T10:00:00"


@pytest.mark.asyncio
async def test_calendar_lists_workspace_schedules_in_range(api_client, auth, make_user, make_workspace, make_post, make_schedule):
    user = await make_user()
    workspace = await make_workspace(user)
    now = datetime.utcnow()
    soon = await make_schedule(await make_post(user, workspace, content="Soon"), scheduled_for=now + timedelta(days=1))
    await make_schedule(await make_post(user, workspace, content="Later"), scheduled_for=now + timedelta(days=20))

    end = (now + timedelta(days=7)).isoformat()
    response = await api_client.get(f"/scheduled-posts?end={end}", headers=auth(user, workspace))

    assert response.status_code == 200
    entries = response.json()
    assert len(entries) == 1
    assert entries[0]["schedule"]["id"] == str(soon.id)
    assert entries[0]["post"]["content"] == "Soon"


@pytest.mark.asyncio
async def test_soft_delete_removes_pending_schedule(api_client, auth, db_session, make_user, make_workspace, make_post, make_schedule):
    user = await make_user()
    workspace = await make_workspace(user)
    post = await make_post(user, workspace)
    await make_schedule(post, scheduled_for=datetime.utcnow() + timedelta(days=1))

    response = await api_client.delete(f"/posts/{post.id}", headers=auth(user))

    assert response.status_code == 200
    result = await db_session.execute(select(ScheduledPost).where(ScheduledPost.post_id == post.id))
    assert result.scalar_one_or_none() is None
    fetched = await api_client.get(f"/posts/{post.id}", headers=auth(user))
    assert fetched.json()["status"] == "deleted"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["deleted", "archived", "draft"])
async def test_patching_status_off_scheduled_cancels_schedule(api_client, auth, make_user, make_workspace, make_post, make_schedule, status):
    user = await make_user()
    workspace = await make_workspace(user)
    post = await make_post(user, workspace)
    await make_schedule(post, scheduled_for=datetime.utcnow() + timedelta(days=1))

    response = await api_client.patch(f"/posts/{post.id}", json={"status": status}, headers=auth(user))

    assert response.status_code == 200
    assert response.json()["status"] == status
    assert response.json()["scheduled_at"] is None
    schedule = await api_client.get(f"/posts/{post.id}/schedule", headers=auth(user))
    assert schedule.status_code == 404


@pytest.mark.asyncio
async def test_move_post_between_workspaces(api_client, auth, make_user, make_workspace, make_post):
    user = await make_user()
    source = await make_workspace(user, "Source")
    target = await make_workspace(user, "Target")
    post = await make_post(user, source)

    response = await api_client.post(
        f"/posts/{post.id}/move",
        json={"target_workspace_id": str(target.id)},
        headers=auth(user),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["moved_from"] == str(source.id)
    assert data["moved_to"] == str(target.id)
    assert data["post"]["workspace_id"] == str(target.id)


@pytest.mark.asyncio
async def test_publish_now_requires_linkedin_connection(api_client, auth, make_user, make_workspace, make_post):
    user = await make_user()
    post = await make_post(user, await make_workspace(user))
    app.dependency_overrides[get_linkedin_client] = lambda: AsyncMock()

    response = await api_client.post(f"/posts/{post.id}/publish", headers=auth(user))

    assert response.status_code == 400
    assert response.json() == {"error": "LinkedIn account not connected"}


@pytest.mark.asyncio
async def test_publish_now_rejects_expired_token(api_client, auth, make_user, make_workspace, make_post):
    user = await make_user(
        linkedin_access_token="token-1",
        linkedin_profile_id="person-1",
        linkedin_token_expires_at=datetime.utcnow() - timedelta(days=1),
    )
    post = await make_post(user, await make_workspace(user))
    linkedin = AsyncMock()
    app.dependency_overrides[get_linkedin_client] = lambda: linkedin

    response = await api_client.post(f"/posts/{post.id}/publish", headers=auth(user))

    assert response.status_code == 400
    linkedin.publish_text.assert_not_called()


@pytest.mark.asyncio
async def test_publish_now_marks_post_and_schedule_published(api_client, auth, db_session, make_user, make_workspace, make_post, make_schedule):
    user = await make_user(linkedin_access_token="token-1", linkedin_profile_id="person-1")
    post = await make_post(user, await make_workspace(user), title="Cadence")
    scheduled = await make_schedule(post, scheduled_for=datetime.utcnow() + timedelta(days=1))
    linkedin = AsyncMock()
    linkedin.publish_text.return_value = LinkedInPostResult(
        post_id="urn:li:share:9",
        post_url="https://www.linkedin.com/feed/update/urn:li:share:9",
    )
    app.dependency_overrides[get_linkedin_client] = lambda: linkedin

    response = await api_client.post(f"/posts/{post.id}/publish", headers=auth(user))

    assert response.status_code == 200
    data = response.json()
    assert data["linkedin_post_id"] == "urn:li:share:9"
    assert data["post"]["status"] == "published"

    token, author, text = linkedin.publish_text.call_args.args
    assert (token, author) == ("token-1", "urn:li:person:person-1")
    assert text.startswith("Cadence\n\n")

    await db_session.refresh(scheduled)
    assert scheduled.posted is True
    assert scheduled.post_url == "https://www.linkedin.com/feed/update/urn:li:share:9"

    again = await api_client.post(f"/posts/{post.id}/publish", headers=auth(user))
    assert again.status_code == 400
    assert again.json() == {"error": "Post is already published"}
