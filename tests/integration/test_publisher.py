"""
Tests for the scheduled-post publisher against a real database session
"""

import pytest
import pytest_asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from sqlalchemy import select
from core.exceptions import LinkedInError, NetworkError
from integrations.linkedin import LinkedInPostResult
from models.base import PostStatus
from models.scheduled_post import ScheduledPost
from publishing.publisher import ScheduledPostPublisher
from services.posts import save_post_changes


def linkedin_mock(post_id="urn:li:share:1"):
    linkedin = AsyncMock()
    result = LinkedInPostResult(post_id=post_id, post_url=f"https://www.linkedin.com/feed/update/{post_id}")
    linkedin.post_to_personal_profile.return_value = result
    linkedin.post_to_company_page.return_value = result
    return linkedin


def notifier_mock():
    notifier = AsyncMock()
    notifier.notify.return_value = {"email": {"success": True}}
    return notifier


@pytest_asyncio.fixture
async def setup(make_user, make_workspace):
    user = await make_user(linkedin_access_token="token-1", linkedin_profile_id="person-1")
    workspace = await make_workspace(user)
    return user, workspace


@pytest.mark.asyncio
async def test_due_post_is_published_and_bookkeeping_is_committed(db_session, setup, make_post, make_schedule):
    user, workspace = setup
    post = await make_post(user, workspace)
    scheduled = await make_schedule(post)
    linkedin = linkedin_mock()

    publisher = ScheduledPostPublisher(db_session, linkedin=linkedin, notifier=notifier_mock())
    summary = await publisher.run()

    assert summary == {"processed": 1, "posted": 1, "notified": 0, "failed": 0, "errors": []}
    linkedin.post_to_personal_profile.assert_awaited_once_with("token-1", "person-1", post.content)

    await db_session.refresh(scheduled)
    await db_session.refresh(post)
    assert scheduled.posted is True
    assert scheduled.linkedin_post_id == "urn:li:share:1"
    assert scheduled.post_url == "https://www.linkedin.com/feed/update/urn:li:share:1"
    assert post.status == PostStatus.PUBLISHED
    assert post.published_at is not None
    assert post.linkedin_post_id == "urn:li:share:1"


@pytest.mark.asyncio
async def test_future_and_posted_rows_are_not_fetched(db_session, setup, make_post, make_schedule):
    user, workspace = setup
    future_post = await make_post(user, workspace)
    await make_schedule(future_post, scheduled_for=datetime.utcnow() + timedelta(hours=1))
    posted_post = await make_post(user, workspace)
    await make_schedule(posted_post, posted=True, posted_at=datetime.utcnow())

    linkedin = linkedin_mock()
    summary = await ScheduledPostPublisher(db_session, linkedin=linkedin, notifier=notifier_mock()).run()

    assert summary["processed"] == 0
    linkedin.post_to_personal_profile.assert_not_called()


@pytest.mark.asyncio
async def test_each_due_row_is_processed_once_per_run(db_session, setup, make_post, make_schedule):
    user, workspace = setup
    for _ in range(3):
        await make_schedule(await make_post(user, workspace))
    linkedin = linkedin_mock()
    publisher = ScheduledPostPublisher(db_session, linkedin=linkedin, notifier=notifier_mock())

    first = await publisher.run()
    second = await publisher.run()

    assert first["posted"] == 3
    assert second["processed"] == 0
    assert linkedin.post_to_personal_profile.await_count == 3


@pytest.mark.asyncio
async def test_batch_size_limits_run_and_oldest_goes_first(db_session, setup, make_post, make_schedule):
    user, workspace = setup
    now = datetime.utcnow()
    newer = await make_schedule(await make_post(user, workspace, content="newer"), scheduled_for=now - timedelta(minutes=1))
    older = await make_schedule(await make_post(user, workspace, content="older"), scheduled_for=now - timedelta(minutes=30))

    publisher = ScheduledPostPublisher(db_session, linkedin=linkedin_mock(), notifier=notifier_mock(), batch_size=1)
    summary = await publisher.run()

    assert summary["processed"] == 1
    await db_session.refresh(older)
    await db_session.refresh(newer)
    assert older.posted is True
    assert newer.posted is False


@pytest.mark.asyncio
async def test_company_page_post_uses_workspace_connection(db_session, make_user, make_workspace, make_post, make_schedule):
    user = await make_user()
    workspace = await make_workspace(user, linkedin_access_token="org-token", linkedin_company_page_id="12345")
    post = await make_post(user, workspace)
    await make_schedule(post, is_company_page=True)
    linkedin = linkedin_mock("urn:li:share:org")

    summary = await ScheduledPostPublisher(db_session, linkedin=linkedin, notifier=notifier_mock()).run()

    assert summary["posted"] == 1
    linkedin.post_to_company_page.assert_awaited_once_with("org-token", "12345", post.content)
    linkedin.post_to_personal_profile.assert_not_called()


@pytest.mark.asyncio
async def test_company_page_failure_is_recorded_for_retry(db_session, make_user, make_workspace, make_post, make_schedule):
    user = await make_user()
    workspace = await make_workspace(user, linkedin_access_token="org-token", linkedin_company_page_id="12345")
    post = await make_post(user, workspace)
    scheduled = await make_schedule(post, is_company_page=True)
    linkedin = linkedin_mock()
    linkedin.post_to_company_page.side_effect = NetworkError("linkedin server error 503")
    scheduled_id = scheduled.id
    notifier = notifier_mock()

    summary = await ScheduledPostPublisher(db_session, linkedin=linkedin, notifier=notifier).run()

    assert summary["failed"] == 1
    assert summary["errors"] == [f"Post {scheduled_id}: linkedin server error 503"]
    notifier.notify.assert_not_called()

    await db_session.refresh(scheduled)
    await db_session.refresh(post)
    assert scheduled.posted is False
    assert scheduled.retry_count == 1
    assert scheduled.error_message == "linkedin server error 503"
    assert post.status == PostStatus.SCHEDULED


@pytest.mark.asyncio
async def test_personal_failure_falls_back_to_notification(db_session, setup, make_post, make_schedule):
    user, workspace = setup
    post = await make_post(user, workspace)
    scheduled = await make_schedule(post)
    linkedin = linkedin_mock()
    linkedin.post_to_personal_profile.side_effect = LinkedInError("token revoked")
    notifier = notifier_mock()

    summary = await ScheduledPostPublisher(db_session, linkedin=linkedin, notifier=notifier).run()

    assert summary == {"processed": 1, "posted": 1, "notified": 1, "failed": 0, "errors": []}
    notifier.notify.assert_awaited_once()
    share_url = notifier.notify.call_args.args[2]
    assert share_url.startswith("https://www.linkedin.com/feed/?shareActive=true&text=")

    await db_session.refresh(scheduled)
    await db_session.refresh(post)
    assert scheduled.notification_sent is True
    assert scheduled.posted is True
    assert post.status == PostStatus.SCHEDULED


@pytest.mark.asyncio
async def test_unconnected_user_gets_notification(db_session, make_user, make_workspace, make_post, make_schedule):
    user = await make_user()
    workspace = await make_workspace(user)
    scheduled = await make_schedule(await make_post(user, workspace))
    linkedin = linkedin_mock()
    notifier = notifier_mock()

    summary = await ScheduledPostPublisher(db_session, linkedin=linkedin, notifier=notifier).run()

    assert summary["notified"] == 1
    linkedin.post_to_personal_profile.assert_not_called()
    await db_session.refresh(scheduled)
    assert scheduled.notification_sent_at is not None


@pytest.mark.asyncio
async def test_row_stops_being_fetched_after_three_failures(db_session, make_user, make_workspace, make_post, make_schedule):
    user = await make_user()
    workspace = await make_workspace(user, linkedin_access_token="org-token", linkedin_company_page_id="12345")
    scheduled = await make_schedule(await make_post(user, workspace), is_company_page=True)
    scheduled_id = scheduled.id
    linkedin = linkedin_mock()
    linkedin.post_to_company_page.side_effect = NetworkError("timeout")
    publisher = ScheduledPostPublisher(db_session, linkedin=linkedin, notifier=notifier_mock())

    for _ in range(3):
        summary = await publisher.run()
        assert summary["failed"] == 1

    summary = await publisher.run()

    assert summary["processed"] == 0
    assert summary["failed"] == 0
    assert linkedin.post_to_company_page.await_count == 3

    result = await db_session.execute(
        select(ScheduledPost.retry_count).where(ScheduledPost.id == scheduled_id)
    )
    assert result.scalar_one() == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [PostStatus.DELETED, PostStatus.ARCHIVED])
async def test_deleted_or_archived_post_is_never_published(db_session, setup, make_post, make_schedule, status):
    user, workspace = setup
    post = await make_post(user, workspace)
    scheduled = await make_schedule(post)
    scheduled_id = scheduled.id
    post.status = status
    await db_session.commit()
    linkedin = linkedin_mock()
    notifier = notifier_mock()

    summary = await ScheduledPostPublisher(db_session, linkedin=linkedin, notifier=notifier).run()

    assert summary == {"processed": 1, "posted": 0, "notified": 0, "failed": 0, "errors": []}
    linkedin.post_to_personal_profile.assert_not_called()
    notifier.notify.assert_not_called()
    result = await db_session.execute(select(ScheduledPost).where(ScheduledPost.id == scheduled_id))
    assert result.scalar_one_or_none() is None
    await db_session.refresh(post)
    assert post.status == status


@pytest.mark.asyncio
async def test_marking_post_deleted_cancels_its_pending_schedule(db_session, setup, make_post, make_schedule):
    user, workspace = setup
    post = await make_post(user, workspace)
    scheduled = await make_schedule(post)
    scheduled_id = scheduled.id
    linkedin = linkedin_mock()

    await save_post_changes(db_session, post, {"status": "deleted"})
    summary = await ScheduledPostPublisher(db_session, linkedin=linkedin, notifier=notifier_mock()).run()

    assert summary["processed"] == 0
    linkedin.post_to_personal_profile.assert_not_called()
    result = await db_session.execute(select(ScheduledPost).where(ScheduledPost.id == scheduled_id))
    assert result.scalar_one_or_none() is None
    assert post.status == PostStatus.DELETED
    assert post.scheduled_at is None
