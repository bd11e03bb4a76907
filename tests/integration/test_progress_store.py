"""Progress store adapter against SQLite."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from ldash.exceptions import IntegrityViolation, StoreUnavailable
from ldash.progress.store import ProgressStore


@pytest.mark.asyncio
async def test_missing_record_is_none(db_session, user_id) -> None:
    assert await ProgressStore(db_session).get_progress(user_id, uuid.uuid4()) is None
    assert await ProgressStore(db_session).get_progress(user_id) == []


@pytest.mark.asyncio
async def test_upsert_creates_then_replaces(db_session, user_id, make_course) -> None:
    course_id = await make_course()
    store = ProgressStore(db_session)

    await store.upsert_progress(user_id, course_id, 40, lesson_index=1)
    record = await store.get_progress(user_id, course_id)
    assert record.progress_percentage == 40
    assert record.completed is False
    assert record.current_lesson_index == 1

    await store.upsert_progress(user_id, course_id, 100, lesson_index=3)
    record = await store.get_progress(user_id, course_id)
    assert record.progress_percentage == 100
    assert record.completed is True
    assert record.current_lesson_index == 3
    assert len(await store.get_progress(user_id)) == 1


@pytest.mark.asyncio
async def test_monotonic_guard_keeps_higher_value(db_session, user_id, make_course) -> None:
    course_id = await make_course()
    store = ProgressStore(db_session, enforce_monotonic=True)

    await store.upsert_progress(user_id, course_id, 100)
    await store.upsert_progress(user_id, course_id, 30)

    record = await store.get_progress(user_id, course_id)
    assert record.progress_percentage == 100
    assert record.completed is True


@pytest.mark.asyncio
async def test_guard_off_allows_plain_replace(db_session, user_id, make_course) -> None:
    course_id = await make_course()
    store = ProgressStore(db_session, enforce_monotonic=False)

    await store.upsert_progress(user_id, course_id, 100)
    await store.upsert_progress(user_id, course_id, 30)

    record = await store.get_progress(user_id, course_id)
    assert record.progress_percentage == 30
    assert record.completed is False


@pytest.mark.asyncio
async def test_omitted_lesson_index_is_kept(db_session, user_id, make_course) -> None:
    course_id = await make_course()
    store = ProgressStore(db_session)

    await store.upsert_progress(user_id, course_id, 50, lesson_index=2)
    await store.upsert_progress(user_id, course_id, 60)

    assert (await store.get_progress(user_id, course_id)).current_lesson_index == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("percentage", [-1, 101])
async def test_out_of_range_rejected(db_session, user_id, percentage: int) -> None:
    with pytest.raises(ValueError):
        await ProgressStore(db_session).upsert_progress(user_id, uuid.uuid4(), percentage)


@pytest.mark.asyncio
async def test_get_completed(db_session, user_id, make_course, make_progress) -> None:
    done, partial = await make_course("A"), await make_course("B")
    await make_progress(user_id, done, 100)
    await make_progress(user_id, partial, 80)

    completed = await ProgressStore(db_session).get_completed(user_id)
    assert [r.course_id for r in completed] == [done]


@pytest.mark.asyncio
async def test_store_failure_surfaces_as_store_unavailable(user_id) -> None:
    db = MagicMock()
    db.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection reset")))

    with pytest.raises(StoreUnavailable) as exc_info:
        await ProgressStore(db, enforce_monotonic=False).get_progress(user_id)
    assert exc_info.value.operation == "get_progress"


@pytest.mark.asyncio
async def test_upsert_for_unknown_course_is_integrity_violation(db_factory, enable_foreign_keys, user_id) -> None:
    await enable_foreign_keys()

    async with db_factory() as db:
        with pytest.raises(IntegrityViolation) as exc_info:
            await ProgressStore(db).upsert_progress(user_id, uuid.uuid4(), 50)
        assert exc_info.value.operation == "upsert_progress"
        assert await ProgressStore(db).get_progress(user_id) == []


@pytest.mark.asyncio
async def test_rejected_upsert_rolls_back(user_id) -> None:
    db = MagicMock()
    db.execute = AsyncMock(
        side_effect=IntegrityError("INSERT", {}, Exception("violates foreign key constraint"))
    )
    db.rollback = AsyncMock()

    with pytest.raises(IntegrityViolation):
        await ProgressStore(db, enforce_monotonic=False).upsert_progress(user_id, uuid.uuid4(), 50)
    db.rollback.assert_awaited_once()
