from __future__ import annotations

import asyncio
from uuid import uuid4

from microcourses.models.progress import CourseCompletion
from microcourses.repos.store import InMemoryStoreProvider
from microcourses.services.completion import CompletionAggregator
from tests.conftest import add_course, add_user


def test_counts_only_full_completions(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner = await add_user(provider)
        seeded = await add_course(provider, lesson_count=3)
        await provider.store.progress.upsert(learner.id, seeded.lessons[0].id, 100, 1)
        await provider.store.progress.upsert(learner.id, seeded.lessons[1].id, 99, 1)
        return await CompletionAggregator(provider).evaluate_course_completion(
            learner.id, seeded.course.id
        )

    completion = asyncio.run(scenario())
    assert completion.total_lessons == 3
    assert completion.completed_lessons == 1
    assert completion.is_complete is False


def test_complete_when_every_lesson_is_done(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner = await add_user(provider)
        seeded = await add_course(provider, lesson_count=2)
        for lesson in seeded.lessons:
            await provider.store.progress.upsert(learner.id, lesson.id, 100, 1)
        return await CompletionAggregator(provider).evaluate_course_completion(
            learner.id, seeded.course.id
        )

    completion = asyncio.run(scenario())
    assert completion.is_complete is True
    assert completion.overall_progress == 100


def test_other_learners_progress_is_ignored(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner = await add_user(provider)
        other = await add_user(provider, first_name="Other")
        seeded = await add_course(provider, lesson_count=1)
        await provider.store.progress.upsert(other.id, seeded.lessons[0].id, 100, 1)
        return await CompletionAggregator(provider).evaluate_course_completion(
            learner.id, seeded.course.id
        )

    assert asyncio.run(scenario()).completed_lessons == 0


def test_zero_lessons_is_never_complete() -> None:
    completion = CourseCompletion(
        learner_id=uuid4(), course_id=uuid4(), total_lessons=0, completed_lessons=0
    )
    assert completion.is_complete is False
    assert completion.overall_progress == 0


def test_overall_progress_rounds() -> None:
    completion = CourseCompletion(
        learner_id=uuid4(), course_id=uuid4(), total_lessons=3, completed_lessons=2
    )
    assert completion.overall_progress == 67
