"""Progress ledger: validation, access rules, upsert semantics, hand-off."""

from __future__ import annotations

import asyncio
from uuid import UUID, uuid4

import pytest
from prometheus_client import REGISTRY

from microcourses.core.errors import LessonNotFoundError, ValidationError
from microcourses.repos.store import InMemoryStoreProvider
from microcourses.services.cache import InMemoryCacheService, course_generation_key
from microcourses.services.certificate_issuer import CertificateIssuer
from microcourses.services.issuance_dispatch import (
    InlineIssuanceDispatcher,
    QueuedIssuanceDispatcher,
)
from microcourses.services.progress_ledger import ProgressLedger
from microcourses.services.task_queue import (
    CERTIFICATE_ISSUANCE_QUEUE,
    InMemoryTaskQueue,
)
from tests.conftest import SeededCourse, add_course, add_enrollment, add_user


class _RecordingDispatcher:
    def __init__(self) -> None:
        self.calls: list[tuple[UUID, UUID]] = []

    async def dispatch(self, learner_id: UUID, course_id: UUID) -> None:
        self.calls.append((learner_id, course_id))


class _FailingDispatcher:
    async def dispatch(self, learner_id: UUID, course_id: UUID) -> None:
        raise RuntimeError("issuer exploded")


def _sample(name: str, labels: dict | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels=labels or {}) or 0.0


async def _enrolled(
    provider: InMemoryStoreProvider, **course_kwargs
) -> tuple[UUID, SeededCourse]:
    learner = await add_user(provider)
    seeded = await add_course(provider, **course_kwargs)
    await add_enrollment(provider, learner.id, seeded.course.id)
    return learner.id, seeded


def _ledger(provider, dispatcher=None, cache=None) -> ProgressLedger:
    return ProgressLedger(
        provider, dispatcher or _RecordingDispatcher(), cache or InMemoryCacheService()
    )


# ---- validation ----


@pytest.mark.parametrize("bad", [-1, 101, 50.0, "50", True, None])
def test_rejects_invalid_percentage(provider: InMemoryStoreProvider, bad) -> None:
    async def scenario():
        learner_id, seeded = await _enrolled(provider)
        await _ledger(provider).record_progress(learner_id, seeded.lessons[0].id, bad)

    with pytest.raises(ValidationError):
        asyncio.run(scenario())


def test_invalid_percentage_writes_nothing(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner_id, seeded = await _enrolled(provider)
        with pytest.raises(ValidationError):
            await _ledger(provider).record_progress(
                learner_id, seeded.lessons[0].id, 150
            )
        return await provider.store.progress.get(learner_id, seeded.lessons[0].id)

    assert asyncio.run(scenario()) is None


# ---- access rules (all reported as the same 404) ----


def test_unknown_lesson_is_not_found(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner_id, _ = await _enrolled(provider)
        await _ledger(provider).record_progress(learner_id, uuid4(), 10)

    with pytest.raises(LessonNotFoundError):
        asyncio.run(scenario())


def test_unpublished_course_is_not_found(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner_id, seeded = await _enrolled(provider, status="draft")
        await _ledger(provider).record_progress(learner_id, seeded.lessons[0].id, 10)

    with pytest.raises(LessonNotFoundError):
        asyncio.run(scenario())


def test_not_enrolled_is_not_found(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        outsider = await add_user(provider, first_name="Eve")
        seeded = await add_course(provider)
        await _ledger(provider).record_progress(outsider.id, seeded.lessons[0].id, 10)

    with pytest.raises(LessonNotFoundError):
        asyncio.run(scenario())


# ---- upsert semantics ----


def test_partial_progress_has_no_completed_at(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner_id, seeded = await _enrolled(provider)
        return await _ledger(provider).record_progress(
            learner_id, seeded.lessons[0].id, 40
        )

    row = asyncio.run(scenario())
    assert row.progress_percentage == 40
    assert row.completed_at is None
    assert row.is_completed is False


def test_complete_lesson_twice_keeps_one_row(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner_id, seeded = await _enrolled(provider)
        ledger = _ledger(provider)
        first = await ledger.complete_lesson(learner_id, seeded.lessons[0].id)
        second = await ledger.complete_lesson(learner_id, seeded.lessons[0].id)
        rows = await provider.store.progress.list_for_lessons(
            learner_id, [seeded.lessons[0].id]
        )
        return first, second, rows

    first, second, rows = asyncio.run(scenario())
    assert len(rows) == 1
    assert first.id == second.id
    assert second.progress_percentage == 100
    assert second.completed_at is not None


def test_regression_clears_completed_at(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner_id, seeded = await _enrolled(provider)
        ledger = _ledger(provider)
        await ledger.complete_lesson(learner_id, seeded.lessons[0].id)
        return await ledger.record_progress(learner_id, seeded.lessons[0].id, 60)

    row = asyncio.run(scenario())
    assert row.progress_percentage == 60
    assert row.completed_at is None


def test_progress_write_invalidates_course_view(
    provider: InMemoryStoreProvider,
) -> None:
    cache = InMemoryCacheService()

    async def scenario():
        learner_id, seeded = await _enrolled(provider)
        key = course_generation_key(learner_id, seeded.course.id)
        before = await cache.generation(key)
        await _ledger(provider, cache=cache).record_progress(
            learner_id, seeded.lessons[0].id, 10
        )
        return before, await cache.generation(key)

    assert asyncio.run(scenario()) == (0, 1)


# ---- issuance hand-off ----


def test_only_full_completion_is_handed_off(provider: InMemoryStoreProvider) -> None:
    dispatcher = _RecordingDispatcher()

    async def scenario():
        learner_id, seeded = await _enrolled(provider)
        ledger = _ledger(provider, dispatcher=dispatcher)
        await ledger.record_progress(learner_id, seeded.lessons[0].id, 99)
        await ledger.record_progress(learner_id, seeded.lessons[0].id, 100)
        return learner_id, seeded.course.id

    learner_id, course_id = asyncio.run(scenario())
    assert dispatcher.calls == [(learner_id, course_id)]


def test_dispatch_failure_keeps_progress_and_is_counted(
    provider: InMemoryStoreProvider,
) -> None:
    async def scenario():
        learner_id, seeded = await _enrolled(provider, lesson_count=1)
        ledger = _ledger(provider, dispatcher=_FailingDispatcher())
        row = await ledger.complete_lesson(learner_id, seeded.lessons[0].id)
        stored = await provider.store.progress.get(learner_id, seeded.lessons[0].id)
        return row, stored

    before = _sample("certificate_issuance_failures_total")
    row, stored = asyncio.run(scenario())
    assert row.is_completed
    assert stored == row
    assert _sample("certificate_issuance_failures_total") - before == 1


def test_inline_dispatch_issues_on_last_lesson(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner_id, seeded = await _enrolled(provider, lesson_count=2)
        ledger = _ledger(
            provider, dispatcher=InlineIssuanceDispatcher(CertificateIssuer(provider))
        )
        await ledger.complete_lesson(learner_id, seeded.lessons[0].id)
        after_first = await provider.store.certificates.get_for_learner_course(
            learner_id, seeded.course.id
        )
        await ledger.complete_lesson(learner_id, seeded.lessons[1].id)
        after_last = await provider.store.certificates.get_for_learner_course(
            learner_id, seeded.course.id
        )
        return after_first, after_last

    after_first, after_last = asyncio.run(scenario())
    assert after_first is None
    assert after_last is not None


def test_queued_dispatch_enqueues_instead_of_issuing(
    provider: InMemoryStoreProvider,
) -> None:
    queue = InMemoryTaskQueue()

    async def scenario():
        learner_id, seeded = await _enrolled(provider, lesson_count=1)
        ledger = _ledger(provider, dispatcher=QueuedIssuanceDispatcher(queue))
        await ledger.complete_lesson(learner_id, seeded.lessons[0].id)
        cert = await provider.store.certificates.get_for_learner_course(
            learner_id, seeded.course.id
        )
        task = await queue.dequeue(CERTIFICATE_ISSUANCE_QUEUE)
        return learner_id, seeded.course.id, cert, task

    learner_id, course_id, cert, task = asyncio.run(scenario())
    assert cert is None
    assert task.payload == {"learner_id": str(learner_id), "course_id": str(course_id)}


def test_progress_metric_labels_outcome(provider: InMemoryStoreProvider) -> None:
    async def scenario():
        learner_id, seeded = await _enrolled(provider)
        ledger = _ledger(provider)
        await ledger.record_progress(learner_id, seeded.lessons[0].id, 30)
        await ledger.record_progress(learner_id, seeded.lessons[1].id, 100)

    partial = {"outcome": "partial"}
    completed = {"outcome": "completed"}
    p0 = _sample("lesson_progress_updates_total", partial)
    c0 = _sample("lesson_progress_updates_total", completed)
    asyncio.run(scenario())
    assert _sample("lesson_progress_updates_total", partial) - p0 == 1
    assert _sample("lesson_progress_updates_total", completed) - c0 == 1
