"""Pydantic read models for badges, certificates and achievements.

Rows come from an untyped store, so the Badge model decodes ``tier`` and
``category`` defensively: anything outside the enum is replaced with a
safe default and logged instead of failing the whole read model.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ldash.exceptions import DecodeAnomaly

logger = structlog.get_logger()


class BadgeTier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class BadgeCategory(str, Enum):
    COURSE = "course"
    ACHIEVEMENT = "achievement"
    STREAK = "streak"
    MILESTONE = "milestone"


def decode_enum(enum_cls: type[Enum], value: Any, field: str) -> Enum:  # noqa: ANN401
    """Case-insensitive enum decode. Raises DecodeAnomaly on unknown values."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as e:
        raise DecodeAnomaly(field, value) from e


def decode_enum_or_default(enum_cls: type[Enum], value: Any, field: str, default: Enum) -> Enum:  # noqa: ANN401
    try:
        return decode_enum(enum_cls, value, field)
    except DecodeAnomaly as anomaly:
        logger.warning(
            "decode_anomaly",
            field=anomaly.field,
            value=repr(anomaly.value),
            default=default.value,
        )
        return default


# --- Badge ---


class Badge(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str = ""
    image_url: str = ""
    tier: BadgeTier
    category: BadgeCategory
    source_type: str
    source_id: str
    earned_at: datetime

    @field_validator("tier", mode="before")
    @classmethod
    def _decode_tier(cls, value: Any) -> BadgeTier:  # noqa: ANN401
        return decode_enum_or_default(BadgeTier, value, "tier", BadgeTier.BRONZE)  # type: ignore[return-value]

    @field_validator("category", mode="before")
    @classmethod
    def _decode_category(cls, value: Any) -> BadgeCategory:  # noqa: ANN401
        return decode_enum_or_default(  # type: ignore[return-value]
            BadgeCategory, value, "category", BadgeCategory.ACHIEVEMENT
        )

    @field_validator("description", "image_url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:  # noqa: ANN401
        return value or ""


# --- Certificate ---


class Certificate(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    course_id: uuid.UUID
    name: str
    description: str = ""
    earned_date: datetime
    download_url: str = ""

    @field_validator("description", "download_url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:  # noqa: ANN401
        return value or ""


# --- Read model ---


class UserAchievements(BaseModel):
    badges: list[Badge]
    certificates: list[Certificate]
    courses_completed: int
    streak_days: int
    total_points: int
    contributions: int = 0


# --- Award scan ---


class AwardReport(BaseModel):
    """Outcome of one award scan for one user."""

    user_id: uuid.UUID
    badges_minted: list[str] = Field(default_factory=list)
    certificates_issued: list[uuid.UUID] = Field(default_factory=list)
    duplicates: list[str] = Field(default_factory=list)
    missing_certificates: list[uuid.UUID] = Field(default_factory=list)
    skipped: list[uuid.UUID] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.badges_minted or self.certificates_issued)
