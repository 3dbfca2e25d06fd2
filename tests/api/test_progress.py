"""Progress endpoints end to end over the in-memory store."""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from microcourses.repos.store import InMemoryStoreProvider
from tests.conftest import (
    SeededCourse,
    add_course,
    add_enrollment,
    add_user,
    auth,
    mint_token,
)


def _enrolled(
    provider: InMemoryStoreProvider, lesson_count: int = 2
) -> tuple[str, SeededCourse]:
    async def setup():
        learner = await add_user(provider)
        seeded = await add_course(provider, lesson_count=lesson_count)
        await add_enrollment(provider, learner.id, seeded.course.id)
        return learner, seeded

    learner, seeded = asyncio.run(setup())
    return mint_token(learner.id), seeded


def test_update_progress_returns_row(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    token, seeded = _enrolled(provider)
    lesson_id = seeded.lessons[0].id
    resp = client.post(
        f"/api/progress/lessons/{lesson_id}",
        json={"progressPercentage": 45},
        headers=auth(token),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["lesson_id"] == str(lesson_id)
    assert body["progress_percentage"] == 45
    assert body["completed_at"] is None
    assert body["is_completed"] is False


def test_update_progress_requires_auth(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    _, seeded = _enrolled(provider)
    resp = client.post(
        f"/api/progress/lessons/{seeded.lessons[0].id}",
        json={"progressPercentage": 45},
    )
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


def test_percentage_must_be_a_strict_integer(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    token, seeded = _enrolled(provider)
    url = f"/api/progress/lessons/{seeded.lessons[0].id}"
    for bad in (101, -5, 50.5, "50", True, None):
        resp = client.post(url, json={"progressPercentage": bad}, headers=auth(token))
        assert resp.status_code == 400, bad
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_not_enrolled_gets_lesson_not_found(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    _, seeded = _enrolled(provider)
    outsider = asyncio.run(add_user(provider, first_name="Outsider"))
    resp = client.post(
        f"/api/progress/lessons/{seeded.lessons[0].id}",
        json={"progressPercentage": 10},
        headers=auth(mint_token(outsider.id)),
    )
    assert resp.status_code == 404
    assert resp.json() == {
        "error": {
            "code": "LESSON_NOT_FOUND",
            "message": "Lesson not found or access denied",
        }
    }


def test_completing_every_lesson_issues_one_certificate(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    token, seeded = _enrolled(provider, lesson_count=2)
    for lesson in seeded.lessons:
        resp = client.post(
            f"/api/progress/lessons/{lesson.id}/complete", headers=auth(token)
        )
        assert resp.status_code == 200
        assert resp.json()["is_completed"] is True

    # A retried completion must not mint a second certificate.
    client.post(
        f"/api/progress/lessons/{seeded.lessons[-1].id}/complete", headers=auth(token)
    )

    certs = client.get("/api/certificates/my-certificates", headers=auth(token)).json()
    assert certs["total"] == 1
    assert certs["items"][0]["course_id"] == str(seeded.course.id)


def test_regression_after_certificate_keeps_certificate(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    token, seeded = _enrolled(provider, lesson_count=1)
    lesson_url = f"/api/progress/lessons/{seeded.lessons[0].id}"
    client.post(f"{lesson_url}/complete", headers=auth(token))

    resp = client.post(lesson_url, json={"progressPercentage": 20}, headers=auth(token))
    assert resp.json()["completed_at"] is None

    certs = client.get("/api/certificates/my-certificates", headers=auth(token)).json()
    assert certs["total"] == 1


def test_course_progress_view_reflects_writes(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    token, seeded = _enrolled(provider, lesson_count=2)
    url = f"/api/progress/courses/{seeded.course.id}"

    before = client.get(url, headers=auth(token)).json()
    assert before["completedLessons"] == 0

    client.post(
        f"/api/progress/lessons/{seeded.lessons[0].id}/complete", headers=auth(token)
    )
    after = client.get(url, headers=auth(token)).json()
    assert after["completedLessons"] == 1
    assert after["overallProgress"] == 50
    assert after["lessons"][0]["is_completed"] is True


def test_course_progress_for_unenrolled_course_is_404(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    token, _ = _enrolled(provider)
    other = asyncio.run(add_course(provider, title="Elsewhere"))
    resp = client.get(f"/api/progress/courses/{other.course.id}", headers=auth(token))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "COURSE_NOT_FOUND"


def test_overview_envelope(client: TestClient, provider: InMemoryStoreProvider) -> None:
    token, seeded = _enrolled(provider, lesson_count=2)
    client.post(
        f"/api/progress/lessons/{seeded.lessons[0].id}/complete", headers=auth(token)
    )
    body = client.get("/api/progress/overview", headers=auth(token)).json()
    assert body["total"] == 1
    assert body["limit"] == 20
    assert body["offset"] == 0
    assert body["next_offset"] is None
    assert body["statistics"] == {
        "totalCourses": 1,
        "completedCourses": 0,
        "totalCompletedLessons": 1,
        "totalLessonsAcrossCourses": 2,
    }
    item = body["items"][0]
    assert item["progress_percentage"] == 50.0
    assert item["last_activity"] is not None


def test_overview_rejects_out_of_range_limit(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    token, _ = _enrolled(provider)
    for query in ("limit=0", "limit=101", "offset=-1"):
        resp = client.get(f"/api/progress/overview?{query}", headers=auth(token))
        assert resp.status_code == 400, query
