"""Unit tests for the statistics engine."""

import pytest
from datetime import datetime, timedelta

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from weed_tracker.data.models import Entry, Goal, Settings, sort_entries
from weed_tracker.services import statistics as stats

NOW = datetime(2024, 5, 15, 12, 0)


def _entry(when: datetime, amount: float = 1.0, method: str = "joint", entry_id: int = None) -> Entry:
    return Entry(
        id=entry_id or int(when.timestamp() * 1000),
        amount=amount,
        method=method,
        timestamp=when.isoformat(),
    )


class TestTodayStats:
    def test_rolling_24h_window(self):
        entries = [
            _entry(NOW - timedelta(hours=1)),
            _entry(NOW - timedelta(hours=24)),      # boundary is inclusive
            _entry(NOW - timedelta(hours=25)),
            _entry(NOW + timedelta(hours=1)),       # future, excluded
        ]
        result = stats.today_stats(entries, Settings(), NOW)
        assert result.count == 2
        assert result.amount == 2.0

    def test_cost_rounded_to_cents(self):
        entries = [_entry(NOW - timedelta(hours=2), 0.3), _entry(NOW - timedelta(hours=3), 0.4)]
        result = stats.today_stats(entries, Settings(price_per_gram=12.5, currency="USD"), NOW)
        assert result.cost == round(0.7 * 12.5, 2) == 8.75

    def test_not_calendar_day(self):
        # 23h ago is yesterday on the calendar but still inside the window
        entries = [_entry(NOW - timedelta(hours=23))]
        assert stats.today_stats(entries, Settings(), NOW).count == 1


class TestWeekStats:
    def test_two_entries_scenario(self):
        t0 = datetime(2024, 5, 10, 9, 0)
        entries = [_entry(t0, 1.0), _entry(t0 + timedelta(days=1), 2.0)]
        result = stats.week_stats(entries, t0 + timedelta(days=1, hours=1))
        assert result.count == 2
        assert result.amount == 3.0
        assert result.daily_average == pytest.approx(3 / 7)
        assert f"{result.daily_average:.1f}" == "0.4"

    def test_empty_average_is_zero(self):
        assert stats.week_stats([], NOW).daily_average == 0.0

    def test_excludes_older_than_seven_days(self):
        entries = [_entry(NOW - timedelta(days=7, minutes=1)), _entry(NOW - timedelta(days=6))]
        assert stats.week_stats(entries, NOW).count == 1


class TestGoalProgress:
    def test_no_weekly_goal(self):
        result = stats.goal_progress([], Goal(), NOW)
        assert result.percent == 0
        assert result.text == "Set a weekly goal to track progress"

    def test_weekly_remaining(self):
        entries = [_entry(NOW - timedelta(days=1), 3.0)]
        result = stats.goal_progress(entries, Goal(goal_type="reduce", weekly_amount=10), NOW)
        assert result.percent == pytest.approx(30.0)
        assert result.remaining == pytest.approx(7.0)
        assert result.text == "7.0g remaining this week"

    def test_weekly_exceeded_clamps(self):
        entries = [_entry(NOW - timedelta(days=1), 6.0), _entry(NOW - timedelta(days=2), 6.0)]
        result = stats.goal_progress(entries, Goal(goal_type="maintain", weekly_amount=10), NOW)
        assert result.percent == 100
        assert result.text == "Goal exceeded by 2.0g"

    def test_stash_depleted(self):
        start = NOW - timedelta(days=3)
        goal = Goal(goal_type="stash", stash_amount=10, stash_start_date=start.isoformat())
        entries = [
            _entry(NOW - timedelta(days=2), 5.0),
            _entry(NOW - timedelta(days=1), 7.0),
            _entry(NOW - timedelta(days=5), 50.0),   # before the stash started
        ]
        result = stats.goal_progress(entries, goal, NOW)
        assert result.remaining == pytest.approx(-2.0)
        assert result.text == "Stash depleted by 2.0g"
        assert result.percent == 100

    def test_stash_left(self):
        start = NOW - timedelta(days=3)
        goal = Goal(goal_type="stash", stash_amount=10, stash_start_date=start.isoformat())
        result = stats.goal_progress([_entry(NOW - timedelta(hours=5), 2.5)], goal, NOW)
        assert result.text == "7.5g left in stash"
        assert result.percent == pytest.approx(25.0)

    def test_stash_unset(self):
        result = stats.goal_progress([], Goal(goal_type="stash", stash_amount=0), NOW)
        assert result.percent == 0
        assert result.text == "Set a stash goal to track your weed supply"


class TestStreak:
    def test_empty(self):
        assert stats.streak([], NOW) == stats.Streak(0, "No streak yet")

    def test_consecutive_days_including_today(self):
        entries = [_entry(NOW - timedelta(days=d)) for d in range(3)]
        result = stats.streak(entries, NOW)
        assert result.count == 3
        assert result.label == "day streak (including today)"

    def test_gap_stops_walk(self):
        entries = [_entry(NOW), _entry(NOW - timedelta(days=2))]
        assert stats.streak(entries, NOW).count == 1

    def test_calendar_days_not_24h_blocks(self):
        entries = [
            _entry(datetime(2024, 5, 15, 0, 10)),
            _entry(datetime(2024, 5, 14, 23, 50)),
        ]
        assert stats.streak(entries, datetime(2024, 5, 15, 0, 30)).count == 2

    def test_nothing_today_means_zero(self):
        entries = [_entry(NOW - timedelta(days=1)), _entry(NOW - timedelta(days=2))]
        assert stats.streak(entries, NOW) == stats.Streak(0, "No streak yet")


class TestTimeSince:
    def test_no_entries(self):
        assert stats.time_since_last([], NOW) == stats.TimeSince(0, "hours", "No usage yet")

    @pytest.mark.parametrize("delta, value, unit", [
        (timedelta(minutes=30), 30, "minutes"),
        (timedelta(minutes=150), 2, "hours"),
        (timedelta(days=3, hours=5), 3, "days"),
        (timedelta(days=45), 1, "months"),
        (timedelta(days=400), 1, "years"),
        (timedelta(days=365 * 150), 99, "years"),
    ])
    def test_unit_selection(self, delta, value, unit):
        result = stats.time_since_last([_entry(NOW - delta, entry_id=1)], NOW)
        assert (result.value, result.unit) == (value, unit)

    def test_scans_unsorted_entries(self):
        newest = _entry(NOW - timedelta(minutes=10), 1.5, "bong")
        entries = [_entry(NOW - timedelta(days=2)), newest, _entry(NOW - timedelta(days=1))]
        result = stats.time_since_last(entries, NOW)
        assert result.value == 10
        assert result.text == "Last usage: 1.5g Bong at 11:50"

    def test_whole_grams_have_no_decimal(self):
        result = stats.time_since_last([_entry(NOW - timedelta(hours=1), 2.0, "edible")], NOW)
        assert result.text == "Last usage: 2g Edible at 11:00"

    def test_future_entry_is_just_now(self):
        result = stats.time_since_last([_entry(NOW + timedelta(hours=2))], NOW)
        assert (result.value, result.unit) == (0, "minutes")


class TestDashboardSnapshot:
    def test_contains_every_panel(self):
        entries = sort_entries([_entry(NOW - timedelta(hours=h)) for h in (1, 30)])
        snap = stats.dashboard_snapshot(entries, Goal(), Settings(), NOW)
        assert snap["today"]["count"] == 1
        assert snap["week"]["count"] == 2
        assert snap["goal"]["text"] == "Set a weekly goal to track progress"
        assert snap["streak"]["count"] == 2
        assert snap["time_since"]["unit"] == "hours"
        assert snap["currency"] == "USD"
        assert snap["entry_count"] == 2
