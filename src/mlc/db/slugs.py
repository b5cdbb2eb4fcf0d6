"""URL slug generation with uniqueness against a model's `slug` column."""

from __future__ import annotations

import re
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


class SlugConflictError(ValueError):
    """A slug (or other unique name) is already taken."""


def slugify(text: str) -> str:
    """Lower-case, collapse non-alphanumerics to '-', strip leading/trailing '-'."""
    slug = _NON_ALNUM.sub("-", text.lower()).strip("-")
    return slug or "untitled"


async def slug_exists(db: AsyncSession, model: Any, slug: str) -> bool:  # noqa: ANN401
    result = await db.execute(select(model.id).where(model.slug == slug).limit(1))
    return result.first() is not None


async def unique_slug(db: AsyncSession, model: Any, text: str) -> str:  # noqa: ANN401
    """First free slug among `base`, `base-1`, `base-2`, ..."""
    base = slugify(text)
    slug = base
    counter = 1
    while await slug_exists(db, model, slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug
