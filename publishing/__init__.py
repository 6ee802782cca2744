"""
Scheduled post publishing.

Modules:
    publisher: ScheduledPostPublisher, one batch run over due posts
    notifications: "Time to post" reminders (email, push) with a share link
    scheduler: APScheduler interval job running the publisher in-process

Usage:
    from publishing.publisher import ScheduledPostPublisher

    async with async_session_maker() as session:
        summary = await ScheduledPostPublisher(session).run()
"""
