"""Tests for the single-habit evaluator: progress, streaks, completion, visibility."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import NOW, TODAY, days_ago
from habitstreak.errors import InvalidFrequency
from habitstreak.services.periods import period_key, previous_period_key
from habitstreak.services.progress import compute_streak

D = period_key("daily", NOW)


def _daily(n: int) -> int:
    key = D
    for _ in range(n):
        key = previous_period_key("daily", key)
    return key


class TestComputeStreak:
    def test_single_missed_day_is_bridged_with_one_gap(self):
        keys = [_daily(0), _daily(1), _daily(3)]
        assert compute_streak(keys, "daily", NOW, allowed_gaps=1) == 3

    def test_single_missed_day_breaks_strict_streak(self):
        keys = [_daily(0), _daily(1), _daily(3)]
        assert compute_streak(keys, "daily", NOW, allowed_gaps=0) == 2

    def test_today_not_yet_logged_spends_a_gap(self):
        keys = [_daily(1), _daily(2)]
        assert compute_streak(keys, "daily", NOW, allowed_gaps=1) == 2
        assert compute_streak(keys, "daily", NOW, allowed_gaps=0) == 0

    def test_gap_budget_resets_after_each_match(self):
        keys = [_daily(0), _daily(2), _daily(4), _daily(6)]
        assert compute_streak(keys, "daily", NOW, allowed_gaps=1) == 4

    def test_two_missed_days_exceed_single_gap(self):
        keys = [_daily(0), _daily(3)]
        assert compute_streak(keys, "daily", NOW, allowed_gaps=1) == 1

    def test_empty_keys(self):
        assert compute_streak([], "weekly", NOW, allowed_gaps=0) == 0

    def test_streak_crosses_year_boundary(self):
        now = datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)
        keys = [20240102, 20240101, 20231231, 20231230]
        assert compute_streak(keys, "daily", now, allowed_gaps=0) == 4

    def test_monthly_streak_wraps_year(self):
        now = date(2024, 2, 10)
        assert compute_streak([202402, 202401, 202312, 202311], "monthly", now, 0) == 4

    def test_invalid_frequency(self):
        with pytest.raises(InvalidFrequency):
            compute_streak([D], "hourly", NOW, 0)


class TestCurrentProgress:
    def test_progress_sums_log_values(self, habit_factory, log_factory, evaluator):
        habit = habit_factory()
        log_factory(habit, NOW - timedelta(hours=3))
        log_factory(habit, NOW - timedelta(hours=2))
        log_factory(habit, NOW - timedelta(hours=1), value=-1)

        assert evaluator.current_progress(habit, NOW) == 1

    def test_progress_ignores_other_periods(self, habit_factory, log_factory, evaluator):
        habit = habit_factory()
        log_factory(habit, days_ago(1))

        assert evaluator.current_progress(habit, NOW) == 0

    def test_weekly_progress_counts_whole_iso_week(self, habit_factory, log_factory, evaluator):
        habit = habit_factory(frequency="weekly")
        log_factory(habit, datetime(2024, 6, 10, 8, 0, tzinfo=timezone.utc))  # Monday
        log_factory(habit, datetime(2024, 6, 11, 8, 0, tzinfo=timezone.utc))
        log_factory(habit, datetime(2024, 6, 9, 8, 0, tzinfo=timezone.utc))  # previous Sunday

        assert evaluator.current_progress(habit, NOW) == 2

    def test_progress_isolated_per_habit(self, habit_factory, log_factory, evaluator):
        first = habit_factory(name="First")
        second = habit_factory(name="Second")
        log_factory(first, NOW)

        assert evaluator.current_progress(first, NOW) == 1
        assert evaluator.current_progress(second, NOW) == 0

    def test_uppercase_stored_frequency_is_accepted(self, habit_factory, log_factory, evaluator):
        habit = habit_factory(frequency=" Monthly ")
        log_factory(habit, days_ago(5))

        assert evaluator.current_progress(habit, NOW) == 1

    def test_invalid_stored_frequency_raises(self, habit_factory, evaluator):
        habit = habit_factory(frequency="yearly")

        with pytest.raises(InvalidFrequency):
            evaluator.current_progress(habit, NOW)


class TestIsCompleted:
    @pytest.mark.parametrize("logged,expected", [(2, False), (3, True), (4, True)])
    def test_numeric_target(self, habit_factory, log_factory, evaluator, logged, expected):
        habit = habit_factory(goal_type="numeric", target_value=3)
        for i in range(logged):
            log_factory(habit, NOW - timedelta(minutes=i + 1))

        assert evaluator.is_completed(habit, NOW) is expected

    def test_binary_habit_targets_one(self, habit_factory, log_factory, evaluator):
        habit = habit_factory()
        assert evaluator.is_completed(habit, NOW) is False

        log_factory(habit, NOW)
        assert evaluator.is_completed(habit, NOW) is True

    def test_undo_reopens_period(self, habit_factory, log_factory, evaluator):
        habit = habit_factory()
        log_factory(habit, NOW - timedelta(minutes=2))
        log_factory(habit, NOW - timedelta(minutes=1), value=-1)

        assert evaluator.is_completed(habit, NOW) is False


class TestCalculateStreak:
    def test_no_logs_is_zero(self, habit_factory, evaluator):
        habit = habit_factory(allowed_gaps=3)
        assert evaluator.calculate_streak(habit, NOW) == 0

    def test_daily_gap_tolerance_uses_habit_setting(self, habit_factory, log_factory, evaluator):
        tolerant = habit_factory(name="Tolerant", allowed_gaps=1)
        strict = habit_factory(name="Strict", allowed_gaps=0)
        for habit in (tolerant, strict):
            for n in (0, 1, 3):
                log_factory(habit, days_ago(n))

        assert evaluator.calculate_streak(tolerant, NOW) == 3
        assert evaluator.calculate_streak(strict, NOW) == 2

    def test_multiple_logs_per_day_count_once(self, habit_factory, log_factory, evaluator):
        habit = habit_factory()
        log_factory(habit, NOW - timedelta(hours=1))
        log_factory(habit, NOW - timedelta(hours=2))
        log_factory(habit, days_ago(1))

        assert evaluator.calculate_streak(habit, NOW) == 2

    def test_weekly_ignores_allowed_gaps(self, habit_factory, log_factory, evaluator):
        habit = habit_factory(frequency="weekly", allowed_gaps=5)
        log_factory(habit, NOW)
        log_factory(habit, NOW - timedelta(weeks=1))
        log_factory(habit, NOW - timedelta(weeks=3))

        assert evaluator.calculate_streak(habit, NOW) == 2

    def test_monthly_streak(self, habit_factory, log_factory, evaluator):
        habit = habit_factory(frequency="monthly")
        for when in (date(2024, 6, 1), date(2024, 5, 20), date(2024, 4, 3)):
            log_factory(habit, datetime.combine(when, datetime.min.time(), tzinfo=timezone.utc))

        assert evaluator.calculate_streak(habit, NOW) == 3

    def test_explicit_framing_overrides_habit_frequency(self, habit_factory, log_factory, evaluator):
        habit = habit_factory(frequency="weekly", allowed_gaps=0)
        for n in range(3):
            log_factory(habit, days_ago(n))

        assert evaluator.calculate_streak(habit, NOW) == 1
        assert evaluator.calculate_streak(habit, NOW, "daily") == 3


class TestTerminalCompletion:
    def test_streak_target_reached_with_gap_for_today(self, habit_factory, log_factory, evaluator):
        habit = habit_factory(target_type="streak", streak_target=5, allowed_gaps=1)
        for n in range(1, 6):
            log_factory(habit, days_ago(n))

        assert evaluator.has_reached_terminal_completion(habit, NOW) is True
        assert evaluator.should_appear_today(habit, NOW) is False

    def test_streak_target_not_reached_without_gap(self, habit_factory, log_factory, evaluator):
        habit = habit_factory(target_type="streak", streak_target=5, allowed_gaps=0)
        for n in range(1, 6):
            log_factory(habit, days_ago(n))

        assert evaluator.has_reached_terminal_completion(habit, NOW) is False
        assert evaluator.should_appear_today(habit, NOW) is True

    def test_streak_target_counts_days_for_weekly_habit(self, habit_factory, log_factory, evaluator):
        # Three logs in one week are a weekly streak of 1 but a daily streak of 3.
        habit = habit_factory(
            frequency="weekly", target_type="streak", streak_target=3, allowed_gaps=0
        )
        for n in range(3):
            log_factory(habit, days_ago(n))

        assert evaluator.calculate_streak(habit, NOW) == 1
        assert evaluator.has_reached_terminal_completion(habit, NOW) is True

    def test_end_date_in_the_past(self, habit_factory, evaluator):
        habit = habit_factory(target_type="endDate", end_date=TODAY - timedelta(days=1))

        assert evaluator.has_reached_terminal_completion(habit, NOW) is True
        assert evaluator.should_appear_today(habit, NOW) is False

    def test_end_date_today_is_still_active(self, habit_factory, evaluator):
        habit = habit_factory(target_type="endDate", end_date=TODAY)

        assert evaluator.has_reached_terminal_completion(habit, NOW) is False
        assert evaluator.should_appear_today(habit, NOW) is True

    def test_ongoing_habit_never_terminates(self, habit_factory, log_factory, evaluator):
        habit = habit_factory()
        for n in range(30):
            log_factory(habit, days_ago(n))

        assert evaluator.has_reached_terminal_completion(habit, NOW) is False


class TestShouldAppearToday:
    def test_daily_habit_stays_after_completion(self, habit_factory, log_factory, evaluator):
        habit = habit_factory()
        log_factory(habit, NOW)

        assert evaluator.should_appear_today(habit, NOW) is True

    def test_future_start_date_hides_habit(self, habit_factory, evaluator):
        habit = habit_factory(start_date=TODAY + timedelta(days=1))
        assert evaluator.should_appear_today(habit, NOW) is False

    def test_start_date_today_shows_habit(self, habit_factory, evaluator):
        habit = habit_factory(start_date=TODAY)
        assert evaluator.should_appear_today(habit, NOW) is True

    def test_archived_habit_hidden(self, habit_factory, evaluator):
        habit = habit_factory(is_archived=True)
        assert evaluator.should_appear_today(habit, NOW) is False

    def test_weekly_completed_midweek_still_listed(self, habit_factory, log_factory, evaluator):
        habit = habit_factory(frequency="weekly")
        log_factory(habit, NOW)

        assert evaluator.is_completed(habit, NOW) is True
        assert evaluator.should_appear_today(habit, NOW) is True

    def test_weekly_completed_hidden_on_sunday(self, habit_factory, log_factory, evaluator):
        sunday = datetime(2024, 6, 16, 10, 0, tzinfo=timezone.utc)
        habit = habit_factory(frequency="weekly")
        log_factory(habit, sunday - timedelta(days=2))

        assert evaluator.should_appear_today(habit, sunday) is False

    def test_weekly_incomplete_listed_on_sunday(self, habit_factory, evaluator):
        sunday = datetime(2024, 6, 16, 10, 0, tzinfo=timezone.utc)
        habit = habit_factory(frequency="weekly")

        assert evaluator.should_appear_today(habit, sunday) is True

    def test_monthly_completed_hidden_on_last_day(self, habit_factory, log_factory, evaluator):
        month_end = datetime(2024, 6, 30, 10, 0, tzinfo=timezone.utc)
        habit = habit_factory(frequency="monthly", goal_type="numeric", target_value=2)
        log_factory(habit, datetime(2024, 6, 3, 10, 0, tzinfo=timezone.utc))
        log_factory(habit, datetime(2024, 6, 20, 10, 0, tzinfo=timezone.utc))

        assert evaluator.should_appear_today(habit, month_end) is False
        assert evaluator.should_appear_today(habit, month_end - timedelta(days=1)) is True


class TestEvaluate:
    def test_bundles_all_outputs(self, habit_factory, log_factory, evaluator):
        habit = habit_factory(name="Read", goal_type="numeric", target_value=2, allowed_gaps=1)
        log_factory(habit, NOW)
        log_factory(habit, days_ago(2))

        result = evaluator.evaluate(habit, NOW)

        assert result.habit_id == habit.id
        assert result.name == "Read"
        assert result.state == (1, 2, False, True)
        assert result.is_owned is False
        assert result.can_manage_progress is False

    def test_with_permissions_returns_copy(self, habit_factory, evaluator):
        habit = habit_factory()
        result = evaluator.evaluate(habit, NOW)

        flagged = result.with_permissions(is_owned=True, can_manage_progress=True)

        assert flagged.is_owned and flagged.can_manage_progress
        assert result.is_owned is False
        assert flagged.state == result.state
