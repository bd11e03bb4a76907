"""Course endpoints."""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_catalog_is_public(client: AsyncClient, make_course) -> None:
    await make_course("Intro to Biology")
    data = (await client.get("/api/v1/courses")).json()
    assert [c["title"] for c in data] == ["Intro to Biology"]


@pytest.mark.asyncio
async def test_unknown_course_404(authed_client: AsyncClient) -> None:
    response = await authed_client.get(f"/api/v1/courses/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json() == {"detail": "Course not found"}


@pytest.mark.asyncio
async def test_enroll_and_complete_lessons(authed_client: AsyncClient, make_course) -> None:
    course_id = await make_course(lessons_count=2)

    enrolled = await authed_client.post(f"/api/v1/courses/{course_id}/enroll")
    assert enrolled.status_code == 200
    assert enrolled.json()["progress_percentage"] == 0

    done = await authed_client.post(f"/api/v1/courses/{course_id}/lessons/1/complete")
    assert done.json()["progress_percentage"] == 100
    assert done.json()["completed"] is True

    detail = (await authed_client.get(f"/api/v1/courses/{course_id}")).json()
    assert detail["is_enrolled"] is True
    assert detail["has_completed"] is True


@pytest.mark.asyncio
async def test_lesson_out_of_range_is_422(authed_client: AsyncClient, make_course) -> None:
    course_id = await make_course(lessons_count=2)
    response = await authed_client.post(f"/api/v1/courses/{course_id}/lessons/5/complete")
    assert response.status_code == 422
