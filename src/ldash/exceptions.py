"""Error taxonomy shared by the store adapters, services and API layer."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class LearnerDashboardError(Exception):
    """Base exception for all learner-dashboard errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class NotAuthenticated(LearnerDashboardError):
    """No active session. Operations fail fast and are never retried."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class StoreUnavailable(LearnerDashboardError):
    """Transport or query failure against the store. Surfaced, not retried."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Store unavailable during {operation}")


class IntegrityViolation(LearnerDashboardError):
    """The store rejected a write for a reason other than a duplicate key.

    Typically a foreign key pointing at a missing profile, course or event.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Store rejected {operation}: referenced record missing or invalid")


class DecodeAnomaly(LearnerDashboardError):
    """A stored value fell outside its expected enum.

    Raised by the decode helpers and recovered at the model boundary by
    substituting a default; it never reaches callers.
    """

    def __init__(self, field: str, value: object) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Unexpected {field} value: {value!r}")


@contextmanager
def store_guard(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures into StoreUnavailable.

    IntegrityError passes through untouched: callers use it to detect
    unique-constraint conflicts.
    """
    try:
        yield
    except IntegrityError:
        raise
    except SQLAlchemyError as exc:
        raise StoreUnavailable(operation) from exc


UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the IntegrityError comes from a UNIQUE/primary key constraint.

    asyncpg reports a SQLSTATE; SQLite only names the failure in its message.
    """
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    message = str(orig)
    return "UNIQUE constraint failed" in message or "duplicate key value" in message
