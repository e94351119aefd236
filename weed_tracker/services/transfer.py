"""
Import/Export Pipeline — portable JSON backups of the whole tracker state.

Export bundles entries, goal and settings into one document. Import does the
reverse with all-or-nothing validation: a single bad record rejects the whole
file. Committing an accepted import (backup, replace, persist) is done by the
tracker service, which owns the state.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from weed_tracker.data.models import Entry, Goal, Settings, parse_timestamp
from weed_tracker.data.validators import (
    DecodeError,
    decode_entry,
    decode_goal,
    decode_settings,
    loads_strict,
)

logger = logging.getLogger(__name__)

MAX_IMPORT_BYTES = 10 * 1024 * 1024
EXPORT_FILENAME = "weed-tracker-export-{date}.json"
JSON_CONTENT_TYPE = "application/json"


class TransferError(ValueError):
    """An export or import was rejected. The message is user-facing."""


@dataclass
class ExportBundle:
    filename: str
    content: str
    entry_count: int


@dataclass
class ImportPreview:
    """A validated import waiting for the user's confirmation."""
    entries: List[Entry]
    goal: Goal
    settings: Settings
    export_date: Optional[str]

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    @property
    def confirmation_message(self) -> str:
        exported = parse_timestamp(self.export_date)
        when = exported.date().isoformat() if exported else "Unknown"
        return (
            f"Import {self.entry_count} entries from {when}?\n\n"
            "This will replace your current data. Make sure to export your "
            "current data first if you want to keep it."
        )


# ── Export ──────────────────────────────────────────────────────────────────

def build_export(
    entries: List[Entry],
    goal: Goal,
    settings: Settings,
    now: datetime,
) -> dict:
    """The export document as plain data. Raises TransferError if state is invalid."""
    if not isinstance(entries, list):
        raise TransferError("Data validation failed. Cannot export.")
    document = {
        "entries": [e.to_dict() for e in entries],
        "goal": goal.to_dict(),
        "settings": settings.to_dict(),
        "exportDate": now.isoformat(),
    }
    try:
        decode_goal(document["goal"])
        decode_settings(document["settings"])
    except DecodeError as exc:
        logger.warning("Refusing to export invalid state: %s", exc)
        raise TransferError("Data validation failed. Cannot export.") from exc
    return document


def export_filename(now: datetime) -> str:
    return EXPORT_FILENAME.format(date=now.date().isoformat())


def export_state(
    entries: List[Entry],
    goal: Goal,
    settings: Settings,
    now: datetime,
) -> ExportBundle:
    document = build_export(entries, goal, settings, now)
    try:
        content = json.dumps(document, indent=2, ensure_ascii=False, allow_nan=False)
    except ValueError as exc:
        logger.warning("Refusing to export non-finite numbers: %s", exc)
        raise TransferError("Data validation failed. Cannot export.") from exc
    return ExportBundle(
        filename=export_filename(now),
        content=content,
        entry_count=len(entries),
    )


# ── Import ──────────────────────────────────────────────────────────────────

def check_import_file(
    filename: Optional[str],
    content_type: Optional[str],
    size: Optional[int],
) -> None:
    """Cheap checks on the picked file before reading it."""
    is_json = (content_type == JSON_CONTENT_TYPE) or (
        filename is not None and filename.lower().endswith(".json")
    )
    if (filename is not None or content_type is not None) and not is_json:
        raise TransferError("Please select a valid JSON file.")
    if size is not None and size > MAX_IMPORT_BYTES:
        raise TransferError("File is too large. Please select a file smaller than 10MB.")


def decode_import(document: Any) -> ImportPreview:
    """Validate a parsed document. Raises TransferError on the first problem."""
    invalid = TransferError("Invalid data format. Please select a valid export file.")
    if not isinstance(document, dict):
        raise invalid
    raw_entries = document.get("entries")
    if not isinstance(raw_entries, list):
        raise invalid
    # older exports stored the goal under "goals"
    raw_goal = document["goal"] if "goal" in document else document.get("goals")
    try:
        goal = decode_goal(raw_goal)
        settings = decode_settings(document.get("settings"))
        entries = [decode_entry(item) for item in raw_entries]
    except DecodeError as exc:
        logger.warning("Import rejected: %s", exc)
        raise invalid from exc

    export_date = document.get("exportDate")
    return ImportPreview(
        entries=entries,
        goal=goal,
        settings=settings,
        export_date=export_date if isinstance(export_date, str) else None,
    )


def parse_import(text: str) -> ImportPreview:
    if len(text.encode("utf-8")) > MAX_IMPORT_BYTES:
        raise TransferError("File is too large. Please select a file smaller than 10MB.")
    try:
        document = loads_strict(text)
    except ValueError as exc:
        logger.warning("Import file is not valid JSON: %s", exc)
        raise TransferError(
            "Failed to parse the file. Please check if it's a valid export file."
        ) from exc
    return decode_import(document)


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Data portability. export_state() produces the JSON text and filename for
#   a download; parse_import() turns an uploaded file back into typed objects.
#
# Key decisions:
#   - All-or-nothing import: one invalid entry rejects the file, so a user
#     never ends up with a half-imported history.
#   - Two-step import: parse_import() returns an ImportPreview with a
#     confirmation message; nothing changes until the tracker commits it.
#   - The legacy "goals" key is accepted so files from older versions still
#     load.
#
# Interviewer-friendly talking points:
#   1. Errors are TransferError with user-facing text, so the service layer
#      can show exc's message as-is.
#   2. The 10 MB cap is checked both on the file metadata and on the text.
