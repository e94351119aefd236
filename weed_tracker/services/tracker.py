"""
Tracker Service — owns the in-memory state and every operation that changes it.

Each operation runs to completion: validate → mutate → persist → return a
Notice for the UI. Nothing raises past this layer; expected failures get a
specific message, unexpected ones are logged with a traceback and reported
generically. On any failure the previous state is left untouched.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from weed_tracker.data.models import (
    GOAL_TYPES,
    METHODS,
    MOODS,
    AlternativesState,
    Entry,
    Goal,
    Settings,
    default_alternatives,
    default_goal,
    default_settings,
    parse_timestamp,
    sort_entries,
)
from weed_tracker.data.validators import is_number, validate_entry, validate_goal, validate_settings
from weed_tracker.services import alternatives, statistics
from weed_tracker.services import charts as chart_data
from weed_tracker.services.persistence import (
    ALTERNATIVES_KEY,
    ENTRIES_KEY,
    GOAL_KEY,
    PersistenceGateway,
    epoch_ms,
)
from weed_tracker.services.transfer import (
    ExportBundle,
    ImportPreview,
    TransferError,
    check_import_file,
    export_state,
    parse_import,
)

logger = logging.getLogger(__name__)

MAX_ENTRY_AMOUNT = 1000
MAX_NOTES_LENGTH = 1000
RECENT_ENTRIES_SHOWN = 20
FORM_TIME_FORMAT = "%Y-%m-%dT%H:%M"


class NoticeLevel:
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass
class Notice:
    """A user-facing message about the outcome of an operation."""
    level: str
    message: str

    @property
    def ok(self) -> bool:
        return self.level != NoticeLevel.ERROR


def _success(message: str) -> Notice:
    return Notice(NoticeLevel.SUCCESS, message)


def _error(message: str) -> Notice:
    return Notice(NoticeLevel.ERROR, message)


@dataclass
class TrackerState:
    """Everything the app knows, held in memory between saves."""
    entries: List[Entry] = field(default_factory=list)
    goal: Goal = field(default_factory=default_goal)
    settings: Settings = field(default_factory=default_settings)
    alternatives: AlternativesState = field(default_factory=default_alternatives)


def sanitize_notes(text, max_length: int = MAX_NOTES_LENGTH) -> str:
    """Strip angle brackets, cap the length, trim whitespace."""
    if not isinstance(text, str):
        return ""
    cleaned = text.strip().replace("<", "").replace(">", "")
    return cleaned[:max_length].strip()


def default_form_time(now: datetime) -> str:
    """Value for a datetime-local input: local time to the minute."""
    return now.strftime(FORM_TIME_FORMAT)


class TrackerService:
    """
    The application's single point of mutation.

    State lives on the instance (no module globals); the UI holds a reference
    to the service and re-polls dashboard()/charts() after each operation.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        clock: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.gateway = gateway
        self.clock = clock
        self.rng = rng or random.Random()
        self.state = self.load_state()

    # ── Loading ─────────────────────────────────────────────────────────────

    def load_state(self) -> TrackerState:
        state = TrackerState(
            entries=self.gateway.load_entries(),
            goal=self.gateway.load_goal(),
            settings=self.gateway.load_settings(),
            alternatives=self.gateway.load_alternatives(),
        )
        logger.info("Loaded %d entries (goal type: %s)", len(state.entries), state.goal.goal_type)
        return state

    # ── Entries ─────────────────────────────────────────────────────────────

    def add_entry(
        self,
        amount,
        method: str,
        notes: str = "",
        mood: str = "",
        timestamp: Optional[str] = None,
    ) -> Notice:
        """Create an entry from raw form values."""
        try:
            now = self.clock()
            value = _parse_amount(amount)
            if value is None or value <= 0 or value > MAX_ENTRY_AMOUNT:
                return _error("Please enter a valid amount between 0.1 and 1000 grams.")
            if method not in METHODS:
                return _error("Please select a valid consumption method.")
            if timestamp is None or timestamp == "":
                timestamp = default_form_time(now)
            if parse_timestamp(timestamp) is None:
                return _error("Please enter a valid date and time.")
            if mood and mood not in MOODS:
                return _error("Please select a valid mood option.")

            entry = Entry(
                id=self._next_id(now),
                amount=value,
                method=method,
                notes=sanitize_notes(notes),
                mood=mood or "",
                timestamp=timestamp,
                created_at=now.isoformat(),
            )
            if not validate_entry(entry.to_dict()):
                return _error("Invalid entry data. Please check your input.")

            self.state.entries = sort_entries([*self.state.entries, entry])
            self.gateway.save_entries(self.state.entries)
            logger.info("Added entry %s: %.2fg %s", entry.id, entry.amount, entry.method)
            return _success("Entry added successfully!")
        except Exception:
            logger.exception("Error adding entry")
            return _error("Failed to add entry. Please try again.")

    def delete_entry(self, entry_id) -> Notice:
        try:
            if not is_number(entry_id) or not entry_id:
                return _error("Invalid entry ID.")
            remaining = [e for e in self.state.entries if e.id != entry_id]
            if len(remaining) == len(self.state.entries):
                return _error("Entry not found.")
            self.state.entries = remaining
            self.gateway.save_entries(self.state.entries)
            logger.info("Deleted entry %s", entry_id)
            return _success("Entry deleted successfully!")
        except Exception:
            logger.exception("Error deleting entry")
            return _error("Failed to delete entry. Please try again.")

    def recent_entries(self, limit: int = RECENT_ENTRIES_SHOWN) -> List[Entry]:
        """Newest entries for the history list."""
        valid = [e for e in self.state.entries if validate_entry(e.to_dict())]
        return sort_entries(valid)[:limit]

    # ── Goal & settings ─────────────────────────────────────────────────────

    def save_goal(
        self,
        goal_type: str,
        weekly_amount=None,
        stash_amount=None,
    ) -> Notice:
        try:
            if goal_type not in GOAL_TYPES:
                return _error("Please select a valid goal type.")
            started = self.clock().isoformat()

            if goal_type == "stash":
                stash = _parse_amount(stash_amount)
                if stash is None or stash <= 0:
                    return _error("Please enter a valid stash amount greater than 0.")
                goal = Goal(goal_type=goal_type, weekly_amount=0, stash_amount=stash,
                            start_date=started, stash_start_date=started)
            else:
                weekly = _parse_amount(weekly_amount)
                if weekly is None or weekly < 0:
                    return _error("Please enter a valid weekly goal amount (0 or greater).")
                goal = Goal(goal_type=goal_type, weekly_amount=weekly, stash_amount=0,
                            start_date=started)

            if not validate_goal(goal.to_dict()):
                return _error("Invalid goal data. Please check your input.")

            self.state.goal = goal
            self.gateway.save_goal(goal)
            logger.info("Goal saved: %s", goal_type)
            return _success("Goal saved successfully!")
        except Exception:
            logger.exception("Error saving goal")
            return _error("Failed to save goal. Please try again.")

    def reset_goal(self) -> Notice:
        try:
            self.state.goal = default_goal()
            self.gateway.save_goal(self.state.goal)
            return _success("Goal reset successfully!")
        except Exception:
            logger.exception("Error resetting goal")
            return _error("Failed to reset goal. Please try again.")

    def save_settings(self, price_per_gram, currency: str) -> Notice:
        try:
            price = _parse_amount(price_per_gram)
            candidate = {"pricePerGram": price, "currency": currency}
            if price is None or not validate_settings(candidate):
                return _error("Please enter a valid price (0 or greater) and currency.")
            self.state.settings = Settings(price_per_gram=price, currency=currency)
            self.gateway.save_settings(self.state.settings)
            return _success("Settings saved successfully!")
        except Exception:
            logger.exception("Error saving settings")
            return _error("Failed to save settings. Please try again.")

    # ── Alternatives ────────────────────────────────────────────────────────

    def suggestions(self, count: int = alternatives.DEFAULT_SUGGESTION_COUNT) -> dict:
        """A sample per category; empty lists if sampling fails."""
        try:
            return alternatives.pick_suggestions(
                self.state.alternatives.tried_items, count, self.rng)
        except Exception:
            logger.exception("Error picking alternative suggestions")
            return {category: [] for category in alternatives.CATALOG}

    def mark_alternative_tried(self, item_id: str) -> Notice:
        try:
            if not isinstance(item_id, str) or not alternatives.is_known_suggestion(item_id):
                return _error("Unknown suggestion.")
            if not self.state.alternatives.mark_tried(item_id):
                return Notice(NoticeLevel.INFO, "Already marked as tried.")
            self.gateway.save_alternatives(self.state.alternatives)
            return _success("Great job trying an alternative!")
        except Exception:
            logger.exception("Error marking alternative as tried")
            return _error("Failed to update alternatives.")

    def refresh_alternatives(self) -> Tuple[Notice, dict]:
        try:
            refreshed = self.clock().isoformat()
            picks = alternatives.pick_suggestions(
                self.state.alternatives.tried_items,
                alternatives.DEFAULT_SUGGESTION_COUNT,
                self.rng,
            )
            self.state.alternatives.last_refresh = refreshed
            self.gateway.save_alternatives(self.state.alternatives)
        except Exception:
            logger.exception("Error refreshing alternatives")
            return _error("Failed to load new suggestions."), {
                category: [] for category in alternatives.CATALOG}
        return _success("New suggestions loaded!"), picks

    # ── Export / import ─────────────────────────────────────────────────────

    def export_data(self) -> Tuple[Notice, Optional[ExportBundle]]:
        try:
            bundle = export_state(self.state.entries, self.state.goal,
                                  self.state.settings, self.clock())
        except TransferError as exc:
            return _error(str(exc)), None
        except Exception:
            logger.exception("Error exporting data")
            return _error("Failed to export data. Please try again."), None
        logger.info("Exported %d entries to %s", bundle.entry_count, bundle.filename)
        return _success("Data exported successfully!"), bundle

    def preview_import(
        self,
        text: str,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> Tuple[Notice, Optional[ImportPreview]]:
        """Validate an import file. Nothing changes until commit_import()."""
        try:
            size = len(text.encode("utf-8")) if isinstance(text, str) else None
            check_import_file(filename, content_type, size)
            if not isinstance(text, str):
                return _error("Failed to read the file. Please try again."), None
            preview = parse_import(text)
        except TransferError as exc:
            return _error(str(exc)), None
        except Exception:
            logger.exception("Error processing import file")
            return _error("Error processing file. Please try again."), None
        return Notice(NoticeLevel.INFO, preview.confirmation_message), preview

    def commit_import(self, preview: ImportPreview) -> Notice:
        """Back up the current state, then replace it with the preview."""
        try:
            now = self.clock()
            current = self.state
            backup = self.gateway.write_backup(current.entries, current.goal,
                                               current.settings, now)
            if backup is None:
                logger.error("Import aborted: backup of the current data failed")
                return _error("Failed to import data. Please try again.")

            self.state = TrackerState(
                entries=sort_entries(list(preview.entries)),
                goal=preview.goal,
                settings=preview.settings,
                alternatives=current.alternatives,
            )
            self.gateway.save_entries(self.state.entries)
            self.gateway.save_goal(self.state.goal)
            self.gateway.save_settings(self.state.settings)
            self.gateway.cleanup_backups()
            logger.info("Imported %d entries", preview.entry_count)
            return _success(f"Successfully imported {preview.entry_count} entries!")
        except Exception:
            logger.exception("Error performing import")
            return _error("Failed to import data. Please try again.")

    def import_data(self, text: str, filename: Optional[str] = None) -> Notice:
        """preview_import() and commit_import() in one go, for callers without a confirm step."""
        notice, preview = self.preview_import(text, filename)
        if preview is None:
            return notice
        return self.commit_import(preview)

    def clear_data(self) -> Notice:
        """Remove entries, goal and alternatives. Settings are kept."""
        try:
            self.state = TrackerState(settings=self.state.settings)
            for key in (ENTRIES_KEY, GOAL_KEY, ALTERNATIVES_KEY):
                self.gateway.remove(key)
            self.gateway.save_entries(self.state.entries)
            self.gateway.save_goal(self.state.goal)
            self.gateway.save_alternatives(self.state.alternatives)
            logger.warning("All tracker data cleared.")
            return _success("All data cleared successfully!")
        except Exception:
            logger.exception("Error clearing data")
            return _error("Failed to clear data. Please try again.")

    # ── Read-only views ─────────────────────────────────────────────────────

    def dashboard(self, now: Optional[datetime] = None) -> dict:
        s = self.state
        return statistics.dashboard_snapshot(s.entries, s.goal, s.settings, now or self.clock())

    def charts(self, now: Optional[datetime] = None) -> dict:
        return chart_data.chart_bundle(self.state.entries, now or self.clock())

    def time_since_last(self, now: Optional[datetime] = None) -> statistics.TimeSince:
        return statistics.time_since_last(self.state.entries, now or self.clock())

    # ── Helpers ─────────────────────────────────────────────────────────────

    def _next_id(self, now: datetime) -> int:
        candidate = epoch_ms(now)
        existing = {e.id for e in self.state.entries}
        if candidate in existing:
            candidate = max(existing) + 1
        return candidate


def _parse_amount(raw) -> Optional[float]:
    """Form values arrive as strings or numbers; anything else is None."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   The "controller" of the app. The UI calls methods like add_entry() with
#   raw form values and gets back a Notice to display. Derived numbers come
#   from dashboard() and charts(), recomputed on demand.
#
# Key classes:
#   - TrackerState: the explicit state struct (entries, goal, settings,
#     alternatives). No global tracker object.
#   - TrackerService: validation, mutation, persistence, user messages.
#   - Notice: level + message, the only thing operations return to the UI.
#
# Data flow:
#   Form submit → add_entry() → validate → append + re-sort → gateway.save
#   → Notice("success") → UI re-polls dashboard() and charts()
#
# Interviewer-friendly talking points:
#   1. Boundary error handling: specific validation messages first, then a
#      catch-all that logs the traceback and reports a generic failure. The
#      app never crashes on a bad click.
#   2. Injected clock and random source: tests pin "now" and the sample of
#      alternatives without monkeypatching.
#   3. Two-phase import (preview → commit) mirrors a confirm dialog and takes
#      a backup before replacing anything.
