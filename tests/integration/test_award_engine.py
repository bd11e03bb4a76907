"""Award engine — minting, idempotence, races and certificate repair."""

from __future__ import annotations

import json
import uuid

import pytest
from sqlalchemy import func, select

from ldash.achievements.award_engine import AwardEngine, run_award_scan
from ldash.achievements.catalog import seed_badge_catalog
from ldash.achievements.detector import AwardCandidate
from ldash.achievements.service import get_user_achievements
from ldash.db.models import Certificate, UserBadge
from ldash.exceptions import IntegrityViolation, StoreUnavailable


async def _count(db, model, user_id: uuid.UUID) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(model.user_id == user_id))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_intro_to_biology_completion(
    db_factory, db_session, mock_redis, user_id, make_course, make_progress
) -> None:
    course_id = await make_course("Intro to Biology")
    await make_progress(user_id, course_id, 100)

    report = await AwardEngine(db_session, mock_redis).scan(user_id)

    assert report.badges_minted == ["Intro to Biology Completion"]
    assert report.certificates_issued == [course_id]

    badge = (await db_session.execute(select(UserBadge).where(UserBadge.user_id == user_id))).scalar_one()
    assert badge.tier == "gold"
    assert badge.category == "course"
    assert badge.source_type == "course"
    assert badge.source_id == str(course_id)
    assert badge.description == "Completed the Intro to Biology course"
    assert badge.image_url.endswith("?seed=Intro to Biology")

    cert = (await db_session.execute(select(Certificate).where(Certificate.user_id == user_id))).scalar_one()
    assert cert.name == "Intro to Biology"
    assert cert.description == "Successfully completed Intro to Biology with a score of 100%"
    assert cert.download_url == f"/certificates/{course_id}.pdf"

    achievements = await get_user_achievements(db_factory, user_id)
    assert achievements.courses_completed == 1
    assert len(achievements.badges) == 1
    assert len(achievements.certificates) == 1


@pytest.mark.asyncio
async def test_second_scan_is_a_no_op(db_session, mock_redis, user_id, make_course, make_progress) -> None:
    for title in ("Intro to Biology", "Chemistry 101"):
        await make_progress(user_id, await make_course(title), 100)

    first = await AwardEngine(db_session, mock_redis).scan(user_id)
    second = await AwardEngine(db_session, mock_redis).scan(user_id)

    assert len(first.badges_minted) == 2
    assert second.changed is False
    assert await _count(db_session, UserBadge, user_id) == 2
    assert await _count(db_session, Certificate, user_id) == 2


@pytest.mark.asyncio
async def test_incomplete_course_not_awarded(db_session, mock_redis, user_id, make_course, make_progress) -> None:
    await make_progress(user_id, await make_course(), 99)

    report = await AwardEngine(db_session, mock_redis).scan(user_id)

    assert report.changed is False
    assert await _count(db_session, UserBadge, user_id) == 0
    mock_redis.publish.assert_not_awaited()


@pytest.mark.asyncio
async def test_concurrent_duplicate_rejected_by_constraint(
    db_session, mock_redis, user_id, make_course, make_progress, monkeypatch
) -> None:
    course_id = await make_course()
    await make_progress(user_id, course_id, 100)
    await AwardEngine(db_session, mock_redis).scan(user_id)

    # A scan that read the worklist before the other scan committed
    async def stale_worklist(_db, _user_id, _records=None):
        return [AwardCandidate(course_id, needs_badge=True, needs_certificate=True)]

    monkeypatch.setattr("ldash.achievements.award_engine.find_award_worklist", stale_worklist)
    report = await AwardEngine(db_session, mock_redis).scan(user_id)

    assert report.duplicates == ["Intro to Biology Completion"]
    assert report.badges_minted == []
    assert report.errors == []
    assert await _count(db_session, UserBadge, user_id) == 1
    assert await _count(db_session, Certificate, user_id) == 1


@pytest.mark.asyncio
async def test_failed_certificate_retried_on_next_scan(
    db_session, mock_redis, user_id, make_course, make_progress, monkeypatch
) -> None:
    course_id = await make_course()
    await make_progress(user_id, course_id, 100)

    original = AwardEngine._commit_new

    async def failing_certificates(self, row, operation):
        if operation == "issue_certificate":
            raise StoreUnavailable(operation)
        return await original(self, row, operation)

    monkeypatch.setattr(AwardEngine, "_commit_new", failing_certificates)
    first = await AwardEngine(db_session, mock_redis).scan(user_id)

    assert first.badges_minted == ["Intro to Biology Completion"]
    assert first.missing_certificates == [course_id]
    assert await _count(db_session, Certificate, user_id) == 0

    monkeypatch.setattr(AwardEngine, "_commit_new", original)
    second = await AwardEngine(db_session, mock_redis).scan(user_id)

    assert second.badges_minted == []
    assert second.certificates_issued == [course_id]
    assert await _count(db_session, UserBadge, user_id) == 1
    assert await _count(db_session, Certificate, user_id) == 1


@pytest.mark.asyncio
async def test_badge_failure_recorded_and_scan_continues(
    db_session, mock_redis, user_id, make_course, make_progress, monkeypatch
) -> None:
    broken = await make_course("Broken Course")
    fine = await make_course("Fine Course")
    await make_progress(user_id, broken, 100)
    await make_progress(user_id, fine, 100)

    original = AwardEngine._commit_new

    async def failing_for_broken(self, row, operation):
        if operation == "mint_course_badge" and row.source_id == str(broken):
            raise StoreUnavailable(operation)
        return await original(self, row, operation)

    monkeypatch.setattr(AwardEngine, "_commit_new", failing_for_broken)
    report = await AwardEngine(db_session, mock_redis).scan(user_id)

    assert report.badges_minted == ["Fine Course Completion"]
    assert len(report.errors) == 1
    assert str(broken) in report.errors[0]


@pytest.mark.asyncio
async def test_missing_course_row_is_skipped(db_session, mock_redis, user_id, make_progress) -> None:
    ghost = uuid.uuid4()
    await make_progress(user_id, ghost, 100)

    report = await AwardEngine(db_session, mock_redis).scan(user_id)

    assert report.skipped == [ghost]
    assert report.changed is False


@pytest.mark.asyncio
async def test_foreign_key_failure_is_an_error_not_a_duplicate(
    db_factory, mock_redis, make_course, make_progress, enable_foreign_keys
) -> None:
    ghost_user = uuid.uuid4()
    course_id = await make_course()
    await make_progress(ghost_user, course_id, 100)
    await enable_foreign_keys()

    async with db_factory() as db:
        report = await AwardEngine(db, mock_redis).scan(ghost_user)

        assert report.duplicates == []
        assert report.badges_minted == []
        assert len(report.errors) == 1
        assert str(course_id) in report.errors[0]
        assert await _count(db, UserBadge, ghost_user) == 0
    mock_redis.publish.assert_not_awaited()


@pytest.mark.asyncio
async def test_certificate_integrity_failure_leaves_it_missing(
    db_session, mock_redis, user_id, make_course, make_progress, monkeypatch
) -> None:
    course_id = await make_course()
    await make_progress(user_id, course_id, 100)

    original = AwardEngine._commit_new

    async def rejected_certificates(self, row, operation):
        if operation == "issue_certificate":
            raise IntegrityViolation(operation)
        return await original(self, row, operation)

    monkeypatch.setattr(AwardEngine, "_commit_new", rejected_certificates)
    report = await AwardEngine(db_session, mock_redis).scan(user_id)

    assert report.badges_minted == ["Intro to Biology Completion"]
    assert report.missing_certificates == [course_id]
    assert report.duplicates == []


@pytest.mark.asyncio
async def test_minted_badge_notifies_and_invalidates(
    db_session, mock_redis, user_id, make_course, make_progress
) -> None:
    await make_progress(user_id, await make_course(), 100)

    await AwardEngine(db_session, mock_redis).scan(user_id)

    published = {call.args[0]: json.loads(call.args[1]) for call in mock_redis.publish.await_args_list}
    assert "pubsub:badge_earned" in published
    messages = [
        json.loads(call.args[1])
        for call in mock_redis.publish.await_args_list
        if call.args[0] == f"ws:user:{user_id}"
    ]
    notification = next(m for m in messages if m["event"] == "notification")
    assert notification["data"]["description"] == "You've earned a new badge for completing Intro to Biology!"
    assert any(m["event"] == "invalidate" for m in messages)
    mock_redis.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_catalog_badges_awarded_once(db_session, mock_redis, user_id, make_course, make_progress) -> None:
    await seed_badge_catalog(db_session)
    await make_progress(user_id, await make_course(), 100)

    first = await AwardEngine(db_session, mock_redis).scan(user_id)
    second = await AwardEngine(db_session, mock_redis).scan(user_id)

    assert "First Steps" in first.badges_minted
    assert second.badges_minted == []
    result = await db_session.execute(
        select(UserBadge.source_id).where(UserBadge.user_id == user_id, UserBadge.source_type == "badge")
    )
    assert result.scalars().all() == ["first_course"]


@pytest.mark.asyncio
async def test_scan_without_redis(db_session, user_id, make_course, make_progress) -> None:
    await make_progress(user_id, await make_course(), 100)
    report = await AwardEngine(db_session, None).scan(user_id)
    assert len(report.badges_minted) == 1


@pytest.mark.asyncio
async def test_background_scan_uses_its_own_session(
    db_factory, mock_redis, user_id, make_course, make_progress
) -> None:
    await make_progress(user_id, await make_course(), 100)
    report = await run_award_scan(db_factory, mock_redis, user_id)
    assert report is not None
    assert report.certificates_issued
