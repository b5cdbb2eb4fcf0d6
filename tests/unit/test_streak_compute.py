"""Streak arithmetic and learner-local day boundaries."""

from datetime import date, datetime, timezone

from mlc.gamification.streak_service import compute_streak, local_today, resolve_timezone


class TestComputeStreak:
    """Applying one day of activity to a streak."""

    def test_first_activity_starts_at_one(self):
        update = compute_streak(None, 0, 0, date(2026, 3, 10))
        assert update.current_streak == 1
        assert update.longest_streak == 1
        assert update.last_activity_date == date(2026, 3, 10)
        assert update.changed is True

    def test_consecutive_day_increments(self):
        update = compute_streak(date(2026, 3, 9), 4, 4, date(2026, 3, 10))
        assert update.current_streak == 5
        assert update.longest_streak == 5

    def test_same_day_is_noop(self):
        update = compute_streak(date(2026, 3, 10), 3, 8, date(2026, 3, 10))
        assert update.changed is False
        assert update.current_streak == 3
        assert update.longest_streak == 8

    def test_gap_resets_to_one_keeps_longest(self):
        update = compute_streak(date(2026, 3, 7), 12, 12, date(2026, 3, 10))
        assert update.current_streak == 1
        assert update.longest_streak == 12

    def test_month_boundary_is_consecutive(self):
        update = compute_streak(date(2026, 2, 28), 2, 2, date(2026, 3, 1))
        assert update.current_streak == 3

    def test_longest_never_decreases(self):
        update = compute_streak(date(2026, 3, 9), 2, 40, date(2026, 3, 10))
        assert update.current_streak == 3
        assert update.longest_streak == 40


class TestLocalDay:
    """Days are counted in the learner's own timezone."""

    def test_utc_evening_is_next_day_in_tokyo(self):
        now = datetime(2026, 3, 10, 20, 0, tzinfo=timezone.utc)
        assert local_today(now, "Asia/Tokyo") == date(2026, 3, 11)

    def test_utc_morning_is_previous_day_in_los_angeles(self):
        now = datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc)
        assert local_today(now, "America/Los_Angeles") == date(2026, 3, 9)

    def test_naive_datetime_treated_as_utc(self):
        assert local_today(datetime(2026, 3, 10, 23, 30), "UTC") == date(2026, 3, 10)

    def test_unknown_timezone_falls_back_to_utc(self):
        assert resolve_timezone("Mars/Olympus_Mons").key == "UTC"
        assert resolve_timezone(None).key == "UTC"
