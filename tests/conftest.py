from __future__ import annotations

import sys
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from microcourses.api.dependencies import get_store_provider
from microcourses.main import app
from microcourses.models.course import Course, Lesson
from microcourses.models.enrollment import Enrollment
from microcourses.models.user import User
from microcourses.repos.store import InMemoryStoreProvider
from microcourses.services import token_service
from microcourses.services.cache import cache_service
from microcourses.services.task_queue import task_queue

# Ensure repo root is on sys.path so `import microcourses` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def provider() -> Iterator[InMemoryStoreProvider]:
    """Fresh in-memory store per test, wired into the app."""
    fresh = InMemoryStoreProvider()
    app.dependency_overrides[get_store_provider] = lambda: fresh
    yield fresh
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(user_id: UUID | str, roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=str(user_id), roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------


@dataclass
class SeededCourse:
    course: Course
    lessons: list[Lesson]
    creator: User


async def add_user(
    provider: InMemoryStoreProvider,
    *,
    first_name: str = "Ada",
    last_name: str = "Lovelace",
    role: str = "learner",
) -> User:
    user = User.new(
        email=f"{first_name}.{last_name}.{uuid4().hex[:8]}@example.com",
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    await provider.store.users.add(user)
    return user


async def add_course(
    provider: InMemoryStoreProvider,
    *,
    lesson_count: int = 3,
    status: str = "published",
    title: str = "Intro to Testing",
    creator: User | None = None,
) -> SeededCourse:
    if creator is None:
        creator = await add_user(
            provider, first_name="Grace", last_name="Hopper", role="creator"
        )
    course = Course.new(
        title=title,
        creator_id=creator.id,
        description=f"All about {title.lower()}",
        status=status,
    )
    await provider.store.courses.add(course)
    lessons = []
    for index in range(1, lesson_count + 1):
        lesson = Lesson.new(
            course_id=course.id,
            title=f"Lesson {index}",
            order_index=index,
            duration=60 * index,
        )
        await provider.store.lessons.add(lesson)
        lessons.append(lesson)
    return SeededCourse(course=course, lessons=lessons, creator=creator)


async def add_enrollment(
    provider: InMemoryStoreProvider,
    learner_id: UUID,
    course_id: UUID,
    *,
    enrolled_at: int = 1_700_000_000,
) -> Enrollment:
    enrollment = Enrollment(
        learner_id=learner_id, course_id=course_id, enrolled_at=enrolled_at
    )
    await provider.store.enrollments.add(enrollment)
    return enrollment
