"""Achievement threshold evaluation over aggregates."""

from datetime import time

import pytest

from mlc.config import Settings
from mlc.gamification.achievement_rules import AchievementAggregates, evaluate, qualifies
from mlc.gamification.catalog import ACHIEVEMENT_CATALOG, COMPLETION, SCORE, SPECIAL, STREAK


def _names(entries):
    return {e["name"] for e in entries}


class TestQualifies:
    def test_completion_threshold(self):
        criteria = {"lessonsRequired": 5}
        assert qualifies(COMPLETION, criteria, AchievementAggregates(completed_lessons=5))
        assert not qualifies(COMPLETION, criteria, AchievementAggregates(completed_lessons=4))

    def test_streak_threshold(self):
        criteria = {"streakRequired": 7}
        assert qualifies(STREAK, criteria, AchievementAggregates(current_streak=7))
        assert not qualifies(STREAK, criteria, AchievementAggregates(current_streak=6))

    def test_perfect_score_uses_perfect_count(self):
        criteria = {"scoreRequired": 100, "countRequired": 1}
        assert qualifies(SCORE, criteria, AchievementAggregates(perfect_score_count=1))
        assert not qualifies(SCORE, criteria, AchievementAggregates(scores_above_90_count=3))

    def test_high_score_rules_use_high_score_count(self):
        criteria = {"scoreRequired": 95, "countRequired": 2}
        assert qualifies(SCORE, criteria, AchievementAggregates(scores_above_90_count=2))
        assert not qualifies(SCORE, criteria, AchievementAggregates(scores_above_90_count=1))

    def test_daily_lessons(self):
        criteria = {"dailyLessons": 5}
        assert qualifies(SPECIAL, criteria, AchievementAggregates(lessons_completed_today=5))
        assert not qualifies(SPECIAL, criteria, AchievementAggregates(lessons_completed_today=4))

    @pytest.mark.parametrize(
        ("local", "expected"),
        [(time(21, 59), False), (time(22, 0), True), (time(23, 30), True)],
    )
    def test_time_after(self, local, expected):
        agg = AchievementAggregates(local_time=local)
        assert qualifies(SPECIAL, {"timeAfter": "22:00"}, agg) is expected

    @pytest.mark.parametrize(
        ("local", "expected"),
        [(time(6, 59), True), (time(7, 0), False), (time(0, 5), True)],
    )
    def test_time_before(self, local, expected):
        agg = AchievementAggregates(local_time=local)
        assert qualifies(SPECIAL, {"timeBefore": "07:00"}, agg) is expected

    def test_missing_or_malformed_criteria_never_qualify(self):
        agg = AchievementAggregates(completed_lessons=1000, current_streak=1000)
        assert not qualifies(COMPLETION, {}, agg)
        assert not qualifies(STREAK, None, agg)
        assert not qualifies(COMPLETION, {"lessonsRequired": "many"}, agg)
        assert not qualifies("UNKNOWN", {"lessonsRequired": 1}, agg)


class TestEvaluate:
    def test_first_completion_unlocks_first_steps_and_day_one(self):
        agg = AchievementAggregates(completed_lessons=1, current_streak=1, local_time=time(12, 0))
        assert _names(evaluate(ACHIEVEMENT_CATALOG, agg, [])) == {"First Steps", "Day One"}

    def test_already_unlocked_are_skipped(self):
        agg = AchievementAggregates(completed_lessons=1, current_streak=1, local_time=time(12, 0))
        assert _names(evaluate(ACHIEVEMENT_CATALOG, agg, ["First Steps"])) == {"Day One"}

    def test_week_warrior_at_seven_days(self):
        agg = AchievementAggregates(completed_lessons=7, current_streak=7, local_time=time(12, 0))
        met = _names(evaluate(ACHIEVEMENT_CATALOG, agg, ["First Steps", "Day One", "Getting Started"]))
        assert met == {"Week Warrior"}

    def test_night_owl_and_early_bird(self):
        night = AchievementAggregates(completed_lessons=1, current_streak=1, local_time=time(23, 15))
        early = AchievementAggregates(completed_lessons=1, current_streak=1, local_time=time(5, 45))
        assert "Night Owl" in _names(evaluate(ACHIEVEMENT_CATALOG, night, []))
        assert "Early Bird" in _names(evaluate(ACHIEVEMENT_CATALOG, early, []))
        assert "Early Bird" not in _names(evaluate(ACHIEVEMENT_CATALOG, night, []))

    def test_accepts_objects_with_attributes(self):
        class Row:
            def __init__(self, name, type_, criteria):
                self.name = name
                self.type = type_
                self.criteria = criteria

        rows = [Row("First Steps", COMPLETION, {"lessonsRequired": 1})]
        assert evaluate(rows, AchievementAggregates(completed_lessons=1), []) == rows

    def test_catalog_names_are_unique(self):
        names = [e["name"] for e in ACHIEVEMENT_CATALOG]
        assert len(names) == len(set(names)) == 15

    def test_high_score_entries_describe_the_counted_threshold(self):
        threshold = Settings.model_fields["high_score_threshold"].default
        for entry in ACHIEVEMENT_CATALOG:
            if entry["type"] != SCORE or entry["criteria"]["scoreRequired"] >= 100:
                continue
            assert entry["criteria"]["scoreRequired"] == threshold, entry["name"]
            assert f"{threshold}%" in entry["description"], entry["name"]
