"""Learning platform tables.

Creates profiles, courses, course_progress, badges, user_badges,
certificates and the community tables. The unique constraints on
user_badges, certificates and event_participants back the idempotent
award and join operations.

Revision ID: 001_learning_tables
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_learning_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Raw SQL with IF NOT EXISTS so reruns over a partially migrated schema succeed

    # --- Profiles & courses ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id UUID PRIMARY KEY,
            username VARCHAR(64),
            full_name VARCHAR(128),
            avatar_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS courses (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            title VARCHAR(200) NOT NULL,
            description TEXT,
            field VARCHAR(64),
            level VARCHAR(32),
            lessons_count INTEGER NOT NULL DEFAULT 0,
            image_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS course_progress (
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            course_id UUID NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
            progress_percentage INTEGER NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT FALSE,
            last_accessed TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            current_lesson_index INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (user_id, course_id),
            CONSTRAINT ck_course_progress_percentage_range
                CHECK (progress_percentage >= 0 AND progress_percentage <= 100),
            CONSTRAINT ck_course_progress_lesson_index CHECK (current_lesson_index >= 0)
        )
    """)

    # --- Badges & certificates ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id SERIAL PRIMARY KEY,
            slug VARCHAR(64) NOT NULL UNIQUE,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            image_url TEXT,
            tier VARCHAR(16) NOT NULL,
            category VARCHAR(32) NOT NULL,
            trigger_type VARCHAR(32) NOT NULL,
            threshold INTEGER NOT NULL,
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT TRUE
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id SERIAL PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            badge_id INTEGER REFERENCES badges(id),
            name VARCHAR(256) NOT NULL,
            description TEXT,
            image_url TEXT,
            tier VARCHAR(16) NOT NULL,
            category VARCHAR(32) NOT NULL,
            source_type VARCHAR(32) NOT NULL,
            source_id VARCHAR(64) NOT NULL,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_badges_user_source UNIQUE (user_id, source_type, source_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_badges_user_id ON user_badges (user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS certificates (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            course_id UUID NOT NULL REFERENCES courses(id),
            name VARCHAR(200) NOT NULL,
            description TEXT,
            earned_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            download_url TEXT,
            CONSTRAINT uq_certificates_user_course UNIQUE (user_id, course_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_certificates_user_id ON certificates (user_id)")

    # --- Community ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS forum_discussions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            title VARCHAR(200) NOT NULL,
            content TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS forum_replies (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            discussion_id UUID NOT NULL REFERENCES forum_discussions(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_forum_replies_discussion_id ON forum_replies (discussion_id)"
    )

    op.execute("""
        CREATE TABLE IF NOT EXISTS events (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            title VARCHAR(200) NOT NULL,
            description TEXT,
            start_date TIMESTAMPTZ NOT NULL,
            end_date TIMESTAMPTZ,
            location VARCHAR(200)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_events_start_date ON events (start_date)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS event_participants (
            id SERIAL PRIMARY KEY,
            event_id UUID NOT NULL REFERENCES events(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            joined_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_event_participants_event_user UNIQUE (event_id, user_id)
        )
    """)


def downgrade() -> None:
    for table in (
        "event_participants",
        "events",
        "forum_replies",
        "forum_discussions",
        "certificates",
        "user_badges",
        "badges",
        "course_progress",
        "courses",
        "profiles",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
