"""Initial schema.

Creates users, user_streaks, categories, lessons, user_progress,
user_bookmarks, achievements, user_achievements, blogs, careers and
announcements.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            external_id VARCHAR(128) UNIQUE NOT NULL,
            email VARCHAR(320) NOT NULL DEFAULT '',
            name VARCHAR(128) NOT NULL DEFAULT 'User',
            avatar_url TEXT,
            role VARCHAR(16) NOT NULL DEFAULT 'USER',
            is_active BOOLEAN NOT NULL DEFAULT true,
            timezone VARCHAR(64) NOT NULL DEFAULT 'UTC',
            daily_goal INTEGER NOT NULL DEFAULT 1,
            reminder_time VARCHAR(5),
            email_notifications BOOLEAN NOT NULL DEFAULT true,
            push_notifications BOOLEAN NOT NULL DEFAULT false,
            preferred_difficulty VARCHAR(16),
            preferred_categories JSONB NOT NULL DEFAULT '[]',
            learning_style VARCHAR(32),
            last_login_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_streaks (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_activity_date DATE,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Catalog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS categories (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(100) UNIQUE NOT NULL,
            slug VARCHAR(120) UNIQUE NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            is_active BOOLEAN NOT NULL DEFAULT true,
            sort_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS lessons (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(200) NOT NULL,
            slug VARCHAR(240) UNIQUE NOT NULL,
            description TEXT NOT NULL,
            content TEXT NOT NULL,
            type VARCHAR(16) NOT NULL,
            difficulty VARCHAR(16) NOT NULL,
            estimated_duration INTEGER NOT NULL DEFAULT 5,
            category_id BIGINT NOT NULL REFERENCES categories(id),
            tags JSONB NOT NULL DEFAULT '[]',
            video_url TEXT,
            video_thumbnail TEXT,
            quiz_data JSONB,
            meta_description TEXT,
            is_published BOOLEAN NOT NULL DEFAULT false,
            published_at TIMESTAMPTZ,
            created_by VARCHAR(128),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_lessons_published
        ON lessons(is_published, created_at DESC)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_lessons_category
        ON lessons(category_id)
    """)

    # --- Progress & bookmarks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            lesson_id BIGINT NOT NULL REFERENCES lessons(id) ON DELETE CASCADE,
            completed BOOLEAN NOT NULL DEFAULT false,
            score INTEGER,
            time_spent INTEGER NOT NULL DEFAULT 0,
            attempts INTEGER NOT NULL DEFAULT 1,
            video_progress DOUBLE PRECISION,
            quiz_answers JSONB,
            completed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_progress_user_lesson UNIQUE(user_id, lesson_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_user_progress_user_id
        ON user_progress(user_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_progress_completed_at
        ON user_progress(completed_at) WHERE completed = true
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_bookmarks (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            lesson_id BIGINT NOT NULL REFERENCES lessons(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_bookmarks_user_lesson UNIQUE(user_id, lesson_id)
        )
    """)

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(100) UNIQUE NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(16) NOT NULL,
            type VARCHAR(16) NOT NULL,
            criteria JSONB NOT NULL DEFAULT '{}',
            points INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true,
            sort_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            achievement_id BIGINT NOT NULL REFERENCES achievements(id) ON DELETE CASCADE,
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_achievements_user_achievement UNIQUE(user_id, achievement_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_user_achievements_user_id
        ON user_achievements(user_id)
    """)

    # --- Site content ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS blogs (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(200) NOT NULL,
            slug VARCHAR(240) UNIQUE NOT NULL,
            description TEXT NOT NULL,
            content TEXT NOT NULL,
            excerpt TEXT,
            featured_image TEXT,
            tags JSONB NOT NULL DEFAULT '[]',
            category VARCHAR(100),
            is_published BOOLEAN NOT NULL DEFAULT false,
            published_at TIMESTAMPTZ,
            created_by VARCHAR(128) NOT NULL,
            last_edited_by VARCHAR(128),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS careers (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(200) NOT NULL,
            slug VARCHAR(240) UNIQUE NOT NULL,
            description TEXT NOT NULL,
            content TEXT NOT NULL,
            department VARCHAR(100) NOT NULL,
            location VARCHAR(100) NOT NULL,
            job_type VARCHAR(32),
            experience VARCHAR(64),
            salary VARCHAR(64),
            requirements JSONB NOT NULL DEFAULT '[]',
            benefits JSONB NOT NULL DEFAULT '[]',
            is_published BOOLEAN NOT NULL DEFAULT false,
            published_at TIMESTAMPTZ,
            expires_at TIMESTAMPTZ,
            created_by VARCHAR(128) NOT NULL,
            last_edited_by VARCHAR(128),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS announcements (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(200) NOT NULL,
            content TEXT NOT NULL,
            type VARCHAR(16) NOT NULL DEFAULT 'INFO',
            priority VARCHAR(16) NOT NULL DEFAULT 'NORMAL',
            target_audience JSONB NOT NULL DEFAULT '[]',
            is_active BOOLEAN NOT NULL DEFAULT true,
            is_published BOOLEAN NOT NULL DEFAULT false,
            published_at TIMESTAMPTZ,
            expires_at TIMESTAMPTZ,
            view_count INTEGER NOT NULL DEFAULT 0,
            click_count INTEGER NOT NULL DEFAULT 0,
            created_by VARCHAR(128) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)


def downgrade() -> None:
    for table in (
        "announcements",
        "careers",
        "blogs",
        "user_achievements",
        "achievements",
        "user_bookmarks",
        "user_progress",
        "lessons",
        "categories",
        "user_streaks",
        "users",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
