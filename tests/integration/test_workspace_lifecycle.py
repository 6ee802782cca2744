"""
Workspace create, delete, membership and post move behaviour
"""

import pytest
from datetime import datetime, timedelta
from sqlalchemy import func, select
from core.exceptions import BadRequestError, ForbiddenError
from models import (
    AmplificationJob,
    Carousel,
    CreditUsage,
    Post,
    ScheduledPost,
    Transcription,
    VoiceRecording,
    Workspace,
    WorkspaceMember,
)
from models.base import AmplificationStatus, WorkspaceRole
from services import credits
from services.posts import move_post
from services.workspaces import (
    change_member_role,
    delete_workspace,
    get_membership,
    list_user_workspaces,
    merge_posting_schedule,
    remove_member,
    resolve_current_workspace,
    transfer_ownership,
)


async def add_member(db_session, workspace, user, role=WorkspaceRole.EDITOR):
    db_session.add(WorkspaceMember(workspace_id=workspace.id, user_id=user.id, role=role))
    await db_session.commit()


async def count(db_session, model, **filters):
    query = select(func.count()).select_from(model)
    for name, value in filters.items():
        query = query.where(getattr(model, name) == value)
    result = await db_session.execute(query)
    return result.scalar()


@pytest.mark.asyncio
async def test_created_workspace_has_owner_membership(db_session, make_user, make_workspace):
    user = await make_user(email="ana@example.com")
    workspace = await make_workspace(user)

    assert workspace.name == "ana's Workspace"
    assert workspace.credits_remaining == 100
    membership = await get_membership(db_session, workspace.id, user.id)
    assert membership.role == WorkspaceRole.OWNER


@pytest.mark.asyncio
async def test_resolve_current_workspace_prefers_requested_membership(db_session, make_user, make_workspace):
    user = await make_user()
    other = await make_user()
    first = await make_workspace(user, "First")
    second = await make_workspace(user, "Second")
    foreign = await make_workspace(other, "Foreign")

    workspace, role = await resolve_current_workspace(db_session, user, second.id)
    assert workspace.id == second.id
    assert role == WorkspaceRole.OWNER

    # Not a member of the requested workspace: falls back to the first membership
    workspace, _ = await resolve_current_workspace(db_session, user, foreign.id)
    assert workspace.id == first.id

    stranger = await make_user()
    assert await resolve_current_workspace(db_session, stranger) is None


@pytest.mark.asyncio
async def test_cannot_delete_only_workspace(db_session, make_user, make_workspace):
    user = await make_user()
    workspace = await make_workspace(user)

    with pytest.raises(BadRequestError):
        await delete_workspace(db_session, workspace, user.id)


@pytest.mark.asyncio
async def test_only_owner_can_delete_workspace(db_session, make_user, make_workspace):
    owner = await make_user()
    admin = await make_user()
    workspace = await make_workspace(owner)
    await make_workspace(admin)
    await add_member(db_session, workspace, admin, WorkspaceRole.ADMIN)

    with pytest.raises(ForbiddenError):
        await delete_workspace(db_session, workspace, admin.id)


@pytest.mark.asyncio
async def test_delete_workspace_removes_all_content(
    db_session, make_user, make_workspace, make_post, make_schedule, make_transcription
):
    user = await make_user()
    keep = await make_workspace(user, "Keep")
    doomed = await make_workspace(user, "Doomed")
    member = await make_user()
    await add_member(db_session, doomed, member)

    transcription = await make_transcription(user, doomed)
    job = AmplificationJob(
        workspace_id=doomed.id,
        transcription_id=transcription.id,
        recording_id=transcription.recording_id,
        status=AmplificationStatus.COMPLETED,
    )
    db_session.add(job)
    db_session.add(Carousel(workspace_id=doomed.id, user_id=user.id, transcription_id=transcription.id, slide_data=[]))
    await db_session.commit()

    post = await make_post(user, doomed, transcription_id=transcription.id, amplification_job_id=job.id)
    await make_schedule(post, scheduled_for=datetime.utcnow() + timedelta(days=1))
    await credits.charge(db_session, doomed, credits.FEATURE_CAROUSEL, 10, user_id=user.id)
    await db_session.commit()

    kept_post = await make_post(user, keep)

    doomed_id = doomed.id
    paths = await delete_workspace(db_session, doomed, user.id)
    await db_session.commit()

    assert paths == [f"{doomed_id}/voice-recordings/{user.id}/1700000000000-abcd1234.webm"]
    assert await db_session.get(Workspace, doomed_id) is None
    for model in (WorkspaceMember, Post, ScheduledPost, VoiceRecording, Transcription, AmplificationJob, Carousel, CreditUsage):
        assert await count(db_session, model, workspace_id=doomed_id) == 0

    assert await count(db_session, Post, workspace_id=keep.id) == 1
    assert await db_session.get(Post, kept_post.id) is not None
    assert [w.id for w, _ in await list_user_workspaces(db_session, user.id)] == [keep.id]


@pytest.mark.asyncio
async def test_post_moved_out_keeps_content_when_source_workspace_is_deleted(
    db_session, make_user, make_workspace, make_post, make_transcription
):
    user = await make_user()
    keep = await make_workspace(user, "Keep")
    doomed = await make_workspace(user, "Doomed")
    transcription = await make_transcription(user, doomed)
    post = await make_post(user, doomed, transcription_id=transcription.id)

    await move_post(db_session, post, user.id, keep.id)
    await db_session.commit()

    await delete_workspace(db_session, doomed, user.id)
    await db_session.commit()

    result = await db_session.execute(select(Post).where(Post.id == post.id).execution_options(populate_existing=True))
    moved = result.scalar_one()
    assert moved.workspace_id == keep.id
    assert moved.transcription_id is None


@pytest.mark.asyncio
async def test_move_post_carries_its_schedule(db_session, make_user, make_workspace, make_post, make_schedule):
    user = await make_user()
    source = await make_workspace(user, "Source")
    target = await make_workspace(user, "Target")
    post = await make_post(user, source)
    scheduled = await make_schedule(post, scheduled_for=datetime.utcnow() + timedelta(hours=2))

    moved_from, moved_to = await move_post(db_session, post, user.id, target.id)
    await db_session.commit()

    assert (moved_from, moved_to) == (source.id, target.id)
    await db_session.refresh(scheduled)
    assert post.workspace_id == target.id
    assert scheduled.workspace_id == target.id


@pytest.mark.asyncio
async def test_move_post_requires_target_membership(db_session, make_user, make_workspace, make_post):
    user = await make_user()
    other = await make_user()
    source = await make_workspace(user)
    foreign = await make_workspace(other)
    post = await make_post(user, source)

    with pytest.raises(ForbiddenError):
        await move_post(db_session, post, user.id, foreign.id)

    with pytest.raises(BadRequestError):
        await move_post(db_session, post, user.id, source.id)


@pytest.mark.asyncio
async def test_viewer_cannot_move_into_workspace(db_session, make_user, make_workspace, make_post):
    user = await make_user()
    other = await make_user()
    source = await make_workspace(user)
    target = await make_workspace(other)
    await add_member(db_session, target, user, WorkspaceRole.VIEWER)
    post = await make_post(user, source)

    with pytest.raises(ForbiddenError):
        await move_post(db_session, post, user.id, target.id)


@pytest.mark.asyncio
async def test_transfer_ownership_demotes_previous_owner(db_session, make_user, make_workspace):
    owner = await make_user()
    editor = await make_user()
    workspace = await make_workspace(owner)
    await add_member(db_session, workspace, editor)

    await transfer_ownership(db_session, workspace, owner.id, editor.id)
    await db_session.commit()

    assert workspace.owner_id == editor.id
    assert (await get_membership(db_session, workspace.id, editor.id)).role == WorkspaceRole.OWNER
    assert (await get_membership(db_session, workspace.id, owner.id)).role == WorkspaceRole.ADMIN


@pytest.mark.asyncio
async def test_transfer_ownership_requires_existing_member(db_session, make_user, make_workspace):
    owner = await make_user()
    outsider = await make_user()
    workspace = await make_workspace(owner)

    with pytest.raises(BadRequestError):
        await transfer_ownership(db_session, workspace, owner.id, outsider.id)


@pytest.mark.asyncio
async def test_owner_cannot_be_demoted_or_removed(db_session, make_user, make_workspace):
    owner = await make_user()
    editor = await make_user()
    workspace = await make_workspace(owner)
    await add_member(db_session, workspace, editor)

    with pytest.raises(BadRequestError):
        await change_member_role(db_session, workspace, owner.id, "viewer")
    with pytest.raises(BadRequestError):
        await remove_member(db_session, workspace, owner.id)
    with pytest.raises(BadRequestError):
        await change_member_role(db_session, workspace, editor.id, "owner")

    membership = await change_member_role(db_session, workspace, editor.id, "admin")
    assert membership.role == WorkspaceRole.ADMIN


@pytest.mark.asyncio
async def test_posting_schedule_merge_validates_and_keeps_defaults(db_session, make_user, make_workspace):
    workspace = await make_workspace(await make_user())

    schedule = merge_posting_schedule(workspace, {"times": ["08:30", "08:30", "18:00"]})
    assert schedule == {"days": [1, 2, 3, 4, 5], "times": ["08:30", "18:00"], "timezone": "UTC"}

    with pytest.raises(BadRequestError):
        merge_posting_schedule(workspace, {"days": [0, 8]})
    with pytest.raises(BadRequestError):
        merge_posting_schedule(workspace, {"times": ["25:00"]})
