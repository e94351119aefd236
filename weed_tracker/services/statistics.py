"""
Statistics Engine — derived metrics for the dashboard.

Every function here is pure: it takes the entry list (plus goal/settings when
needed) and an explicit `now`, and returns plain values. Nothing reads the
clock or touches storage, so the UI can call these as often as it likes.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from weed_tracker.data.models import (
    Entry,
    Goal,
    Settings,
    method_label,
    parse_timestamp,
)

DAY = timedelta(days=1)
WEEK = timedelta(days=7)
DAYS_PER_MONTH = 30.44
DAYS_PER_YEAR = 365.25
MAX_DISPLAY_VALUE = 99


@dataclass
class PeriodStats:
    count: int
    amount: float
    cost: Optional[float] = None            # last-24h only
    daily_average: Optional[float] = None   # last-7-days only


@dataclass
class GoalProgress:
    percent: float
    remaining: Optional[float]
    text: str


@dataclass
class Streak:
    count: int
    label: str


@dataclass
class TimeSince:
    value: int
    unit: str
    text: str


# ── Windows ─────────────────────────────────────────────────────────────────

def entries_between(entries: Iterable[Entry], start: datetime, end: datetime) -> List[Entry]:
    """Entries with start <= timestamp <= end (both ends inclusive)."""
    return [e for e in entries if start <= e.when <= end]


def total_amount(entries: Iterable[Entry]) -> float:
    return sum(e.amount for e in entries)


def today_stats(entries: List[Entry], settings: Settings, now: datetime) -> PeriodStats:
    """Rolling last-24-hours window (not the calendar day)."""
    window = entries_between(entries, now - DAY, now)
    amount = total_amount(window)
    return PeriodStats(
        count=len(window),
        amount=amount,
        cost=round(amount * settings.price_per_gram, 2),
    )


def week_stats(entries: List[Entry], now: datetime) -> PeriodStats:
    """Rolling last-7-days window. The average always divides by 7."""
    window = entries_between(entries, now - WEEK, now)
    amount = total_amount(window)
    return PeriodStats(
        count=len(window),
        amount=amount,
        daily_average=amount / 7 if window else 0.0,
    )


# ── Goal ────────────────────────────────────────────────────────────────────

def goal_progress(entries: List[Entry], goal: Goal, now: datetime) -> GoalProgress:
    if goal.is_stash:
        return stash_progress(entries, goal, now)

    if not goal.weekly_amount or goal.weekly_amount <= 0:
        return GoalProgress(0.0, None, "Set a weekly goal to track progress")

    used = week_stats(entries, now).amount
    percent = min(used / goal.weekly_amount * 100, 100.0)
    remaining = goal.weekly_amount - used
    if remaining > 0:
        text = f"{remaining:.1f}g remaining this week"
    else:
        text = f"Goal exceeded by {abs(remaining):.1f}g"
    return GoalProgress(percent, remaining, text)


def stash_progress(entries: List[Entry], goal: Goal, now: datetime) -> GoalProgress:
    if not goal.stash_amount or goal.stash_amount <= 0:
        return GoalProgress(0.0, None, "Set a stash goal to track your weed supply")

    start = _parse_or(goal.stash_start_date, now)
    used = total_amount(entries_between(entries, start, now))
    percent = min(used / goal.stash_amount * 100, 100.0)
    remaining = goal.stash_amount - used
    if remaining > 0:
        text = f"{remaining:.1f}g left in stash"
    else:
        text = f"Stash depleted by {abs(remaining):.1f}g"
    return GoalProgress(percent, remaining, text)


# ── Streak ──────────────────────────────────────────────────────────────────

def streak(entries: List[Entry], now: datetime) -> Streak:
    """
    Consecutive calendar days with at least one entry, walking back from today.

    The walk starts at the calendar day of `now` and stops on the first day
    without entries, so a day without usage today always yields 0.
    """
    if not entries:
        return Streak(0, "No streak yet")

    days = {e.when.date() for e in entries}
    today = now.date()
    has_entry_today = today in days

    count = 0
    current: date = today
    while current in days:
        count += 1
        current -= DAY

    if count == 0:
        return Streak(0, "No streak yet")
    if has_entry_today:
        return Streak(count, "day streak (including today)")
    # TODO: start the walk from yesterday when today is empty; until then this
    # label is unreachable because count > 0 implies an entry today.
    return Streak(count, "day streak (last entry yesterday)")


# ── Time since last ─────────────────────────────────────────────────────────

def latest_entry(entries: Iterable[Entry]) -> Optional[Entry]:
    """Entry with the greatest timestamp. Scans everything; order is not trusted."""
    latest: Optional[Entry] = None
    for entry in entries:
        if latest is None or entry.when > latest.when:
            latest = entry
    return latest


def time_since_last(entries: List[Entry], now: datetime) -> TimeSince:
    latest = latest_entry(entries)
    if latest is None:
        return TimeSince(0, "hours", "No usage yet")

    # Future-dated entries count as "just now"
    elapsed = max((now - latest.when).total_seconds(), 0.0)
    minutes = int(elapsed // 60)
    hours = int(elapsed // 3600)
    days = int(elapsed // 86400)
    months = int(days // DAYS_PER_MONTH)
    years = int(days // DAYS_PER_YEAR)

    for value, unit in ((years, "years"), (months, "months"),
                        (days, "days"), (hours, "hours")):
        if value > 0:
            break
    else:
        value, unit = minutes, "minutes"

    text = (
        f"Last usage: {format_grams(latest.amount)}g {method_label(latest.method)} "
        f"at {latest.when.strftime('%H:%M')}"
    )
    return TimeSince(min(value, MAX_DISPLAY_VALUE), unit, text)


# ── Snapshot ────────────────────────────────────────────────────────────────

def dashboard_snapshot(
    entries: List[Entry],
    goal: Goal,
    settings: Settings,
    now: datetime,
) -> dict:
    """Everything the dashboard shows, as plain data."""
    today = today_stats(entries, settings, now)
    week = week_stats(entries, now)
    return {
        "today": asdict(today),
        "week": asdict(week),
        "goal": asdict(goal_progress(entries, goal, now)),
        "streak": asdict(streak(entries, now)),
        "time_since": asdict(time_since_last(entries, now)),
        "currency": settings.currency,
        "entry_count": len(entries),
    }


def format_grams(amount: float) -> str:
    """1.0 → '1', 1.5 → '1.5'."""
    return f"{amount:g}"


def _parse_or(value: Optional[str], fallback: datetime) -> datetime:
    parsed = parse_timestamp(value)
    return parsed if parsed is not None else fallback
