"""Pure metric derivation over a user's progress records.

Every function here is deterministic for a given input (and ``now``) and
touches no I/O, so the dashboard and the achievement read model compute
identical numbers from the same records.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from ldash.progress.schemas import ProgressRecord, WeeklyBucket

MAX_STREAK_DAYS = 30
WEEKLY_BUCKET_COUNT = 7
ONE_WEEK = timedelta(weeks=1)


def compute_streak(records: Sequence[ProgressRecord]) -> int:
    """Streak proxy: one day per progress record, capped at 30.

    Does not look at gaps between access dates.
    """
    return min(len(records), MAX_STREAK_DAYS)


def compute_experience_points(records: Sequence[ProgressRecord]) -> int:
    """Sum of progress percentages across all records."""
    return sum(r.progress_percentage for r in records)


def count_completed(records: Sequence[ProgressRecord]) -> int:
    return sum(1 for r in records if r.completed)


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def weekly_progress(
    records: Sequence[ProgressRecord],
    now: datetime | None = None,
) -> list[WeeklyBucket]:
    """Seven cumulative weekly buckets, "Week 1" .. "Week 7".

    Bucket i sums progress of records accessed within (i + 1) weeks of
    ``now`` and divides by the total record count, not by the number of
    records in the bucket. With no records every bucket is 0.0.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    total = len(records)

    buckets: list[WeeklyBucket] = []
    for i in range(WEEKLY_BUCKET_COUNT):
        window = ONE_WEEK * (i + 1)
        if total:
            in_window = sum(
                r.progress_percentage
                for r in records
                if now - _as_utc(r.last_accessed) <= window
            )
            value = in_window / total
        else:
            value = 0.0
        buckets.append(WeeklyBucket(week=f"Week {i + 1}", progress=value))
    return buckets


def lesson_progress_percentage(lesson_index: int, lessons_count: int) -> int:
    """Percentage reached after completing ``lesson_index`` (0-based).

    Rounds half up and never exceeds 100.
    """
    if lessons_count <= 0:
        raise ValueError("Course has no lessons")
    if lesson_index < 0:
        raise ValueError("lesson_index must be >= 0")
    # floor(x + 0.5) in integer arithmetic
    pct = (200 * (lesson_index + 1) + lessons_count) // (2 * lessons_count)
    return min(pct, 100)
