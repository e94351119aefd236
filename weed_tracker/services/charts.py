"""
Chart Data Preparers — bucket entries into chart-ready series.

Returns plain lists and dicts; drawing them is the UI's business. Window
filtering follows the same inclusive [now - span, now] convention as the
statistics engine.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import List, Tuple

import numpy as np

from weed_tracker.data.models import Entry, method_label
from weed_tracker.services.statistics import entries_between

RECENT_WINDOW = timedelta(hours=48)
WEEKS_SHOWN = 8

TIME_OF_DAY_LABELS = [
    "Early AM (12-6)",
    "Morning (6-12)",
    "Afternoon (12-6)",
    "Evening (6-12)",
]
# np.histogram bins: [0,6) [6,12) [12,18) [18,24]
TIME_OF_DAY_EDGES = [0, 6, 12, 18, 24]

NO_DATA_LABEL = "No data yet"


def recent_points(entries: List[Entry], now: datetime) -> List[Tuple[datetime, float]]:
    """(timestamp, amount) scatter points for the last 48 hours, oldest first."""
    window = entries_between(entries, now - RECENT_WINDOW, now)
    window.sort(key=lambda e: e.when)
    return [(e.when, e.amount) for e in window]


def time_of_day_histogram(entries: List[Entry]) -> dict:
    """Entry counts per quarter of the day, over the whole history."""
    hours = np.array([e.when.hour for e in entries], dtype=float)
    counts, _ = np.histogram(hours, bins=TIME_OF_DAY_EDGES)
    return {"labels": list(TIME_OF_DAY_LABELS), "values": [int(c) for c in counts]}


def method_histogram(entries: List[Entry]) -> dict:
    """Entry counts per method label, in order of first appearance."""
    # keyed by label so "joint" and "Joint" share one slice
    counts = Counter(method_label(e.method) for e in entries)
    if not counts:
        # placeholder slice so an empty doughnut still renders
        return {"labels": [NO_DATA_LABEL], "values": [1]}
    return {
        "labels": list(counts),
        "values": list(counts.values()),
    }


def weekly_series(entries: List[Entry], now: datetime, weeks: int = WEEKS_SHOWN) -> dict:
    """
    Amount and count for the last `weeks` calendar weeks.

    Weeks start on Sunday at midnight; the last bucket is the week that
    contains `now`. Labels run "Week 1" (oldest) to "Week N".
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    days_since_sunday = (midnight.weekday() + 1) % 7
    current_week_start = midnight - timedelta(days=days_since_sunday)
    starts = [current_week_start - timedelta(weeks=i) for i in range(weeks - 1, -1, -1)]

    amounts = np.zeros(weeks)
    counts = np.zeros(weeks, dtype=int)
    for entry in entries:
        when = entry.when
        for idx, start in enumerate(starts):
            if start <= when < start + timedelta(weeks=1):
                amounts[idx] += entry.amount
                counts[idx] += 1
                break

    return {
        "labels": [f"Week {i + 1}" for i in range(weeks)],
        "amounts": [float(a) for a in amounts],
        "counts": [int(c) for c in counts],
    }


def chart_bundle(entries: List[Entry], now: datetime) -> dict:
    """All chart series in one dict, for a single UI refresh."""
    return {
        "recent": recent_points(entries, now),
        "time_of_day": time_of_day_histogram(entries),
        "methods": method_histogram(entries),
        "weekly": weekly_series(entries, now),
    }
