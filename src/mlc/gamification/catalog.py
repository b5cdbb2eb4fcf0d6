"""Achievement catalog and default categories, the single source of truth for seed data."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from mlc.db.models import Achievement, Category
from mlc.db.upsert import conflict_insert

logger = logging.getLogger(__name__)

COMPLETION = "COMPLETION"
STREAK = "STREAK"
SCORE = "SCORE"
SPECIAL = "SPECIAL"

ACHIEVEMENT_CATALOG: list[dict] = [
    # Lesson completion
    {
        "name": "First Steps",
        "description": "Complete your first lesson",
        "icon": "\U0001f3af",
        "type": COMPLETION,
        "criteria": {"lessonsRequired": 1},
        "points": 10,
        "sort_order": 1,
    },
    {
        "name": "Getting Started",
        "description": "Complete 5 lessons",
        "icon": "\U0001f680",
        "type": COMPLETION,
        "criteria": {"lessonsRequired": 5},
        "points": 25,
        "sort_order": 2,
    },
    {
        "name": "Dedicated Learner",
        "description": "Complete 25 lessons",
        "icon": "\U0001f4da",
        "type": COMPLETION,
        "criteria": {"lessonsRequired": 25},
        "points": 100,
        "sort_order": 3,
    },
    {
        "name": "Knowledge Seeker",
        "description": "Complete 50 lessons",
        "icon": "\U0001f9e0",
        "type": COMPLETION,
        "criteria": {"lessonsRequired": 50},
        "points": 250,
        "sort_order": 4,
    },
    {
        "name": "Master Student",
        "description": "Complete 100 lessons",
        "icon": "\U0001f393",
        "type": COMPLETION,
        "criteria": {"lessonsRequired": 100},
        "points": 500,
        "sort_order": 5,
    },
    # Streaks
    {
        "name": "Day One",
        "description": "Start your learning streak",
        "icon": "\U0001f525",
        "type": STREAK,
        "criteria": {"streakRequired": 1},
        "points": 5,
        "sort_order": 6,
    },
    {
        "name": "Week Warrior",
        "description": "Maintain a 7-day streak",
        "icon": "⚡",
        "type": STREAK,
        "criteria": {"streakRequired": 7},
        "points": 50,
        "sort_order": 7,
    },
    {
        "name": "Consistency King",
        "description": "Maintain a 30-day streak",
        "icon": "\U0001f451",
        "type": STREAK,
        "criteria": {"streakRequired": 30},
        "points": 200,
        "sort_order": 8,
    },
    {
        "name": "Unstoppable",
        "description": "Maintain a 100-day streak",
        "icon": "\U0001f3c6",
        "type": STREAK,
        "criteria": {"streakRequired": 100},
        "points": 1000,
        "sort_order": 9,
    },
    # Quiz scores. Rules below 100 count quiz attempts at or above the high-score threshold.
    {
        "name": "Perfect Score",
        "description": "Get 100% on any quiz",
        "icon": "\U0001f4af",
        "type": SCORE,
        "criteria": {"scoreRequired": 100, "countRequired": 1},
        "points": 20,
        "sort_order": 10,
    },
    {
        "name": "Quiz Master",
        "description": "Get 90%+ on 10 quizzes",
        "icon": "\U0001f9e9",
        "type": SCORE,
        "criteria": {"scoreRequired": 90, "countRequired": 10},
        "points": 100,
        "sort_order": 11,
    },
    {
        "name": "Excellence",
        "description": "Score 90% or higher on 25 quizzes",
        "icon": "⭐",
        "type": SCORE,
        "criteria": {"scoreRequired": 90, "countRequired": 25},
        "points": 300,
        "sort_order": 12,
    },
    # Special
    {
        "name": "Speed Learner",
        "description": "Complete 5 lessons in one day",
        "icon": "\U0001f4a8",
        "type": SPECIAL,
        "criteria": {"dailyLessons": 5},
        "points": 75,
        "sort_order": 13,
    },
    {
        "name": "Night Owl",
        "description": "Complete a lesson after 10 PM",
        "icon": "\U0001f989",
        "type": SPECIAL,
        "criteria": {"timeAfter": "22:00"},
        "points": 15,
        "sort_order": 14,
    },
    {
        "name": "Early Bird",
        "description": "Complete a lesson before 7 AM",
        "icon": "\U0001f426",
        "type": SPECIAL,
        "criteria": {"timeBefore": "07:00"},
        "points": 15,
        "sort_order": 15,
    },
]

CATEGORY_SEED_DATA: list[dict] = [
    {
        "name": "Programming",
        "description": "Lessons related to programming languages and software development",
        "slug": "programming",
        "sort_order": 1,
    },
    {
        "name": "Data Science",
        "description": "Lessons on data analysis, machine learning, and statistics",
        "slug": "data-science",
        "sort_order": 2,
    },
    {
        "name": "Design",
        "description": "Lessons on graphic design, UI/UX, and visual arts",
        "slug": "design",
        "sort_order": 3,
    },
    {
        "name": "Business",
        "description": "Lessons on business strategy, marketing, and management",
        "slug": "business",
        "sort_order": 4,
    },
]


async def ensure_achievements(db: AsyncSession, *, refresh: bool = False) -> int:
    """Insert catalog entries missing from the table (matched by unique name).

    With `refresh=True` existing rows are overwritten from the catalog.
    Does not commit.
    """
    for entry in ACHIEVEMENT_CATALOG:
        stmt = conflict_insert(db, Achievement).values(**entry, is_active=True)
        if refresh:
            stmt = stmt.on_conflict_do_update(
                index_elements=["name"],
                set_={
                    "description": stmt.excluded.description,
                    "icon": stmt.excluded.icon,
                    "type": stmt.excluded.type,
                    "criteria": stmt.excluded.criteria,
                    "points": stmt.excluded.points,
                    "sort_order": stmt.excluded.sort_order,
                },
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["name"])
        await db.execute(stmt)
    return len(ACHIEVEMENT_CATALOG)


async def seed_catalog(db: AsyncSession) -> int:
    """Upsert achievements and default categories. Returns number of achievements seeded."""
    seeded = await ensure_achievements(db, refresh=True)

    for category in CATEGORY_SEED_DATA:
        stmt = conflict_insert(db, Category).values(**category, is_active=True)
        stmt = stmt.on_conflict_do_nothing(index_elements=["slug"])
        await db.execute(stmt)

    await db.commit()
    logger.info("Seeded %d achievements and %d categories", seeded, len(CATEGORY_SEED_DATA))
    return seeded
