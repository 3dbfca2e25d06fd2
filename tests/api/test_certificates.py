from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from microcourses.models.user import User
from microcourses.repos.store import InMemoryStoreProvider
from tests.conftest import (
    SeededCourse,
    add_course,
    add_enrollment,
    add_user,
    auth,
    mint_token,
)


def _certified(
    client: TestClient, provider: InMemoryStoreProvider
) -> tuple[User, SeededCourse, dict]:
    """Learner completes a one-lesson course; returns the issued certificate."""

    async def setup():
        learner = await add_user(provider)
        seeded = await add_course(provider, lesson_count=1, title="Compilers")
        await add_enrollment(provider, learner.id, seeded.course.id)
        return learner, seeded

    learner, seeded = asyncio.run(setup())
    token = mint_token(learner.id)
    client.post(
        f"/api/progress/lessons/{seeded.lessons[0].id}/complete", headers=auth(token)
    )
    listing = client.get("/api/certificates/my-certificates", headers=auth(token))
    return learner, seeded, listing.json()["items"][0]


def test_my_certificates_lists_details(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    _, seeded, cert = _certified(client, provider)
    assert cert["course_id"] == str(seeded.course.id)
    assert cert["course_title"] == "Compilers"
    assert cert["learner_name"] == "Ada Lovelace"
    assert cert["creator_name"] == "Grace Hopper"
    assert len(cert["serial_hash"]) == 64


def test_certificate_detail_is_owner_only(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    learner, _, cert = _certified(client, provider)
    url = f"/api/certificates/{cert['id']}"

    resp = client.get(url, headers=auth(mint_token(learner.id)))
    assert resp.status_code == 200
    assert resp.json()["serial_hash"] == cert["serial_hash"]

    stranger = asyncio.run(add_user(provider, first_name="Eve"))
    resp = client.get(url, headers=auth(mint_token(stranger.id)))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "CERTIFICATE_NOT_FOUND"


def test_verify_is_public(client: TestClient, provider: InMemoryStoreProvider) -> None:
    _, _, cert = _certified(client, provider)

    resp = client.get(f"/api/certificates/verify/{cert['serial_hash']}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["valid"] is True
    assert body["certificate"]["serialHash"] == cert["serial_hash"]
    assert body["certificate"]["learnerName"] == "Ada Lovelace"
    assert body["certificate"]["courseTitle"] == "Compilers"


def test_verify_unknown_or_malformed_hash(client: TestClient) -> None:
    for serial in ("0" * 64, "not-a-hash", "A" * 64):
        resp = client.get(f"/api/certificates/verify/{serial}")
        assert resp.status_code == 200
        assert resp.json() == {"valid": False, "certificate": None}


def test_stats_for_course_creator(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    _, seeded, _ = _certified(client, provider)
    token = mint_token(seeded.creator.id, roles=["creator"])

    url = f"/api/certificates/stats/{seeded.course.id}"
    resp = client.get(url, headers=auth(token))
    assert resp.status_code == 200
    assert resp.json() == {
        "total_certificates_issued": 1,
        "certificates_last_30_days": 1,
        "certificates_last_7_days": 1,
        "unique_certificate_holders": 1,
    }


def test_stats_forbidden_for_learner_role(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    learner, seeded, _ = _certified(client, provider)
    resp = client.get(
        f"/api/certificates/stats/{seeded.course.id}",
        headers=auth(mint_token(learner.id)),
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"


def test_stats_hidden_from_other_creators(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    _, seeded, _ = _certified(client, provider)
    rival = asyncio.run(add_user(provider, first_name="Rival", role="creator"))
    resp = client.get(
        f"/api/certificates/stats/{seeded.course.id}",
        headers=auth(mint_token(rival.id, roles=["creator"])),
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "COURSE_NOT_FOUND"


def test_download_returns_placeholder_to_owner_only(
    client: TestClient, provider: InMemoryStoreProvider
) -> None:
    learner, _, cert = _certified(client, provider)
    url = f"/api/certificates/{cert['id']}/download"

    resp = client.get(url, headers=auth(mint_token(learner.id)))
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "PDF generation not yet implemented"
    assert body["certificate"] == cert

    stranger = asyncio.run(add_user(provider, first_name="Eve"))
    resp = client.get(url, headers=auth(mint_token(stranger.id)))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "CERTIFICATE_NOT_FOUND"
