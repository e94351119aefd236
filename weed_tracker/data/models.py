"""
Data models for Weed Tracker.

Plain dataclasses for the four persisted documents. Each one knows how to
turn itself into the camelCase JSON shape that lives in storage and in export
files, so every layer speaks the same "language." Building them from untrusted
JSON is the job of validators.py, not of these classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

METHODS = ("joint", "bong", "pipe", "cigarette", "vape", "edible", "other")
MOODS = ("great", "good", "neutral", "bad", "terrible")
GOAL_TYPES = ("reduce", "maintain", "quit", "stash")

METHOD_LABELS = {
    "joint": "Joint",
    "bong": "Bong",
    "pipe": "Pipe",
    "cigarette": "Cigarette",
    "vape": "Vape",
    "edible": "Edible",
    "other": "Other",
}

MOOD_EMOJI = {
    "great": "\U0001F60A",
    "good": "\U0001F642",
    "neutral": "\U0001F610",
    "bad": "\U0001F614",
    "terrible": "\U0001F622",
}


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 string into a naive local datetime.

    Aware values (e.g. a trailing 'Z') are converted to local time first so
    that everything compares on the same wall clock. Returns None when the
    value is not a string or does not parse.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        dt = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def method_label(method: str) -> str:
    return METHOD_LABELS.get(method, method)


def mood_emoji(mood: Optional[str]) -> str:
    return MOOD_EMOJI.get(mood or "", "")


@dataclass
class Entry:
    """One logged consumption event."""
    id: int
    amount: float
    method: str
    timestamp: str                  # ISO-8601, moment of consumption
    notes: str = ""
    mood: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def when(self) -> datetime:
        """Consumption time as a naive local datetime."""
        return parse_timestamp(self.timestamp)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "amount": self.amount,
            "method": self.method,
            "notes": self.notes,
            "timestamp": self.timestamp,
        }
        if self.mood is not None:
            data["mood"] = self.mood
        if self.created_at is not None:
            data["createdAt"] = self.created_at
        return data


@dataclass
class Goal:
    """The single active goal. Replaced wholesale on save."""
    goal_type: str = "reduce"
    weekly_amount: float = 0
    stash_amount: float = 0
    start_date: Optional[str] = None
    stash_start_date: Optional[str] = None

    @property
    def is_stash(self) -> bool:
        return self.goal_type == "stash"

    def to_dict(self) -> dict:
        return {
            "weeklyAmount": self.weekly_amount,
            "goalType": self.goal_type,
            "startDate": self.start_date,
            "stashAmount": self.stash_amount,
            "stashStartDate": self.stash_start_date,
        }


@dataclass
class Settings:
    """User settings used for cost figures."""
    price_per_gram: float = 10
    currency: str = "USD"

    def to_dict(self) -> dict:
        return {"pricePerGram": self.price_per_gram, "currency": self.currency}


@dataclass
class AlternativesState:
    """Which alternative activities the user has tried."""
    tried_items: List[str] = field(default_factory=list)
    last_refresh: Optional[str] = None

    def mark_tried(self, item_id: str) -> bool:
        """Add item_id. Returns False if it was already there."""
        if item_id in self.tried_items:
            return False
        self.tried_items.append(item_id)
        return True

    def to_dict(self) -> dict:
        return {"triedItems": list(self.tried_items), "lastRefresh": self.last_refresh}


def default_goal() -> Goal:
    return Goal()


def default_settings() -> Settings:
    return Settings()


def default_alternatives() -> AlternativesState:
    return AlternativesState()


def sort_entries(entries: List[Entry]) -> List[Entry]:
    """Newest first by consumption time. Stable for equal timestamps."""
    return sorted(entries, key=lambda e: e.when, reverse=True)


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Defines the "shape" of the four things the app persists: Entry, Goal,
#   Settings and AlternativesState. They carry data but have no storage logic.
#
# Key pieces:
#   - Entry keeps the timestamp as the ISO string the user typed. The parsed
#     datetime is derived on demand (Entry.when), so exporting and importing
#     gives back exactly the same text.
#   - parse_timestamp(): one place that decides how dates are read. Aware
#     timestamps are converted to local time and made naive.
#   - to_dict(): maps snake_case attributes to the camelCase JSON keys used
#     in storage and export files.
#
# Data flow:
#   JSON text → validators.decode_*() → dataclass → services → to_dict() → JSON
#
# Interviewer-friendly talking points:
#   1. Keeping the raw timestamp string avoids lossy round trips (seconds,
#      'Z' suffixes and offsets survive an export/import unchanged).
#   2. Naive local datetimes everywhere: streaks and time-of-day buckets are
#      calendar concepts, so local wall-clock time is the right frame.
#   3. Enum-like tuples (METHODS, MOODS, GOAL_TYPES) instead of Enum classes
#      keep the JSON values plain strings with no conversion step.
