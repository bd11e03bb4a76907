"""Completion detector — builds the award worklist for one user."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ldash.db.models import Certificate, UserBadge
from ldash.exceptions import store_guard
from ldash.progress.schemas import ProgressRecord
from ldash.progress.store import COMPLETE, ProgressStore

COURSE_SOURCE = "course"


@dataclass(frozen=True)
class AwardCandidate:
    """A completed course that still needs a badge, a certificate, or both."""

    course_id: uuid.UUID
    needs_badge: bool
    needs_certificate: bool


async def find_award_worklist(
    db: AsyncSession,
    user_id: uuid.UUID,
    records: Sequence[ProgressRecord] | None = None,
) -> list[AwardCandidate]:
    """Completed courses lacking a course badge, plus badge-without-certificate repairs.

    ``records`` may be passed when the caller already holds the user's
    progress; otherwise completed records are read from the store. Having
    no badge is an ordinary empty lookup, not an error.
    """
    if records is None:
        completed = await ProgressStore(db).get_completed(user_id)
    else:
        completed = [r for r in records if r.progress_percentage >= COMPLETE]
    if not completed:
        return []

    course_ids = list(dict.fromkeys(r.course_id for r in completed))

    with store_guard("find_award_worklist"):
        badge_result = await db.execute(
            select(UserBadge.source_id).where(
                UserBadge.user_id == user_id,
                UserBadge.source_type == COURSE_SOURCE,
                UserBadge.source_id.in_([str(cid) for cid in course_ids]),
            )
        )
        badged = set(badge_result.scalars().all())

        cert_result = await db.execute(
            select(Certificate.course_id).where(
                Certificate.user_id == user_id,
                Certificate.course_id.in_(course_ids),
            )
        )
        certified = set(cert_result.scalars().all())

    worklist: list[AwardCandidate] = []
    for course_id in course_ids:
        has_badge = str(course_id) in badged
        has_certificate = course_id in certified
        if not has_badge:
            worklist.append(AwardCandidate(course_id, needs_badge=True, needs_certificate=not has_certificate))
        elif not has_certificate:
            worklist.append(AwardCandidate(course_id, needs_badge=False, needs_certificate=True))
    return worklist
