"""Demo catalog for local development on the in-memory store.

Loaded by main.py at startup when APP_ENV=dev and no DATABASE_URL is
set.  IDs are fixed so requests can be replayed across restarts.
"""

from __future__ import annotations

import datetime
import logging
from uuid import UUID

from microcourses.models.course import Course, Lesson
from microcourses.models.user import User
from microcourses.repos.store import InMemoryStoreProvider

logger = logging.getLogger(__name__)

DEMO_CREATOR_ID = UUID("00000000-0000-0000-0000-00000000c001")
DEMO_LEARNER_ID = UUID("00000000-0000-0000-0000-00000000a001")
DEMO_COURSE_ID = UUID("00000000-0000-0000-0000-000000000001")
DEMO_DRAFT_COURSE_ID = UUID("00000000-0000-0000-0000-000000000002")

_DEMO_LESSONS = (
    ("What is a microcourse?", 300),
    ("Tracking your progress", 420),
    ("Earning a certificate", 360),
)


async def seed_demo_catalog(provider: InMemoryStoreProvider) -> None:
    async with provider.transaction() as store:
        if await store.courses.get(DEMO_COURSE_ID) is not None:
            return

        now = int(datetime.datetime.now(datetime.UTC).timestamp())
        await store.users.add(
            User(
                id=DEMO_CREATOR_ID,
                email="creator@example.com",
                first_name="Casey",
                last_name="Creator",
                role="creator",
            )
        )
        await store.users.add(
            User(
                id=DEMO_LEARNER_ID,
                email="learner@example.com",
                first_name="Lee",
                last_name="Learner",
            )
        )
        await store.courses.add(
            Course(
                id=DEMO_COURSE_ID,
                title="Getting Started with MicroCourses",
                creator_id=DEMO_CREATOR_ID,
                description="A three-lesson tour of the platform.",
                status="published",
                created_at=now,
            )
        )
        await store.courses.add(
            Course(
                id=DEMO_DRAFT_COURSE_ID,
                title="Advanced Course Authoring",
                creator_id=DEMO_CREATOR_ID,
                description="Not yet published.",
                created_at=now,
            )
        )
        for index, (title, duration) in enumerate(_DEMO_LESSONS, start=1):
            await store.lessons.add(
                Lesson.new(
                    course_id=DEMO_COURSE_ID,
                    title=title,
                    order_index=index,
                    duration=duration,
                )
            )

    logger.info("Seeded demo catalog course=%s", DEMO_COURSE_ID)
