from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from microcourses.db.seed import (
    DEMO_COURSE_ID,
    DEMO_DRAFT_COURSE_ID,
    DEMO_LEARNER_ID,
    seed_demo_catalog,
)
from microcourses.main import app
from microcourses.repos.store import InMemoryStoreProvider
from tests.conftest import auth, mint_token

client = TestClient(app)


def test_routes_registered() -> None:
    paths = {route.path for route in app.routes}
    assert {
        "/health",
        "/ready",
        "/metrics",
        "/api/progress/lessons/{lesson_id}",
        "/api/progress/lessons/{lesson_id}/complete",
        "/api/progress/courses/{course_id}",
        "/api/progress/overview",
        "/api/enrollments",
        "/api/enrollments/my-enrollments",
        "/api/enrollments/check/{course_id}",
        "/api/enrollments/stats/{course_id}",
        "/api/enrollments/{course_id}",
        "/api/certificates/my-certificates",
        "/api/certificates/verify/{serial_hash}",
        "/api/certificates/stats/{course_id}",
        "/api/certificates/{certificate_id}",
        "/api/certificates/{certificate_id}/download",
    } <= paths


def test_cors_exposes_request_id() -> None:
    resp = client.get("/health", headers={"Origin": "http://localhost:3000"})
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert "X-Request-ID" in resp.headers["access-control-expose-headers"]


def test_demo_catalog_is_idempotent() -> None:
    provider = InMemoryStoreProvider()
    asyncio.run(seed_demo_catalog(provider))
    asyncio.run(seed_demo_catalog(provider))

    async def lessons():
        async with provider.transaction() as store:
            return await store.lessons.list_for_course(DEMO_COURSE_ID)

    assert [lesson.order_index for lesson in asyncio.run(lessons())] == [1, 2, 3]


def test_demo_learner_can_enroll_in_published_course_only(
    provider: InMemoryStoreProvider,
) -> None:
    asyncio.run(seed_demo_catalog(provider))
    token = mint_token(DEMO_LEARNER_ID)

    resp = client.post(
        "/api/enrollments",
        json={"courseId": str(DEMO_COURSE_ID)},
        headers=auth(token),
    )
    assert resp.status_code == 201

    resp = client.post(
        "/api/enrollments",
        json={"courseId": str(DEMO_DRAFT_COURSE_ID)},
        headers=auth(token),
    )
    assert resp.status_code == 404
