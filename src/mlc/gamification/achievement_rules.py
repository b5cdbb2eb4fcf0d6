"""Achievement threshold rules: pure evaluation over a learner's aggregates."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import time
from typing import Any

from mlc.gamification.catalog import COMPLETION, SCORE, SPECIAL, STREAK

PERFECT_SCORE = 100


@dataclass(frozen=True)
class AchievementAggregates:
    """All-time counters the rules are evaluated against."""

    completed_lessons: int = 0
    current_streak: int = 0
    scores_above_90_count: int = 0
    perfect_score_count: int = 0
    lessons_completed_today: int = 0
    local_time: time | None = None


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":", 1)
    return time(int(hours), int(minutes))


def _int(criteria: Mapping[str, Any], key: str) -> int | None:
    value = criteria.get(key)
    if value is None:
        return None
    return int(value)


def qualifies(
    achievement_type: str,
    criteria: Mapping[str, Any] | None,
    aggregates: AchievementAggregates,
) -> bool:
    """True if `aggregates` satisfy the achievement's threshold.

    Missing or malformed criteria never qualify.
    """
    criteria = criteria or {}
    try:
        if achievement_type == COMPLETION:
            required = _int(criteria, "lessonsRequired")
            return required is not None and aggregates.completed_lessons >= required

        if achievement_type == STREAK:
            required = _int(criteria, "streakRequired")
            return required is not None and aggregates.current_streak >= required

        if achievement_type == SCORE:
            score_required = _int(criteria, "scoreRequired")
            count_required = _int(criteria, "countRequired")
            if score_required is None or count_required is None:
                return False
            if score_required >= PERFECT_SCORE:
                return aggregates.perfect_score_count >= count_required
            return aggregates.scores_above_90_count >= count_required

        if achievement_type == SPECIAL:
            return _special_qualifies(criteria, aggregates)
    except (TypeError, ValueError):
        return False

    return False


def _special_qualifies(criteria: Mapping[str, Any], aggregates: AchievementAggregates) -> bool:
    if "dailyLessons" in criteria:
        return aggregates.lessons_completed_today >= int(criteria["dailyLessons"])
    if aggregates.local_time is None:
        return False
    if "timeAfter" in criteria:
        return aggregates.local_time >= _parse_hhmm(str(criteria["timeAfter"]))
    if "timeBefore" in criteria:
        return aggregates.local_time < _parse_hhmm(str(criteria["timeBefore"]))
    return False


def evaluate(
    catalog: Iterable[Any],
    aggregates: AchievementAggregates,
    already_unlocked: Iterable[str],
) -> list[Any]:
    """Catalog entries newly met by `aggregates`, skipping names already unlocked.

    Entries may be catalog dicts or `Achievement` rows (anything with
    name/type/criteria as keys or attributes).
    """
    unlocked = set(already_unlocked)
    newly_met = []
    for entry in catalog:
        name = _field(entry, "name")
        if name in unlocked:
            continue
        if qualifies(_field(entry, "type"), _field(entry, "criteria"), aggregates):
            newly_met.append(entry)
            unlocked.add(name)
    return newly_met


def _field(entry: Any, key: str) -> Any:  # noqa: ANN401
    if isinstance(entry, Mapping):
        return entry.get(key)
    return getattr(entry, key, None)
