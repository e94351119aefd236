"""
Validators — the decode step between untrusted JSON and typed models.

Anything that comes from storage or from an import file is first parsed into
plain Python data, then run through a decode_* function here. A decode either
returns a dataclass or raises DecodeError; the validate_* wrappers turn that
into a bool for callers that only need a yes/no.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from .models import (
    GOAL_TYPES,
    AlternativesState,
    Entry,
    Goal,
    Settings,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


class DecodeError(ValueError):
    """Raised when a document does not have the expected shape."""


def is_number(value: Any) -> bool:
    # bool is an int subclass; JSON true/false must not pass as numbers
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _reject_constant(token: str) -> Any:
    raise ValueError(f"non-standard JSON constant {token!r}")


def loads_strict(text: str) -> Any:
    """
    json.loads that only accepts standard JSON.

    NaN/Infinity tokens raise ValueError, and so does nesting too deep for
    the parser (RecursionError), so callers have one exception to catch.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except RecursionError as exc:
        raise ValueError("JSON document is nested too deeply") from exc


def is_valid_date(value: Any) -> bool:
    return parse_timestamp(value) is not None


def _require_mapping(candidate: Any, what: str) -> dict:
    if not isinstance(candidate, dict):
        raise DecodeError(f"{what} must be an object, got {type(candidate).__name__}")
    return candidate


def _optional_string(data: dict, key: str) -> None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise DecodeError(f"'{key}' must be a string")


# ── Entries ─────────────────────────────────────────────────────────────────

def decode_entry(candidate: Any) -> Entry:
    data = _require_mapping(candidate, "entry")

    entry_id = data.get("id")
    if not is_number(entry_id) or entry_id == 0:
        raise DecodeError("'id' must be a non-zero number")

    amount = data.get("amount")
    if not is_number(amount) or amount <= 0:
        raise DecodeError("'amount' must be a number greater than 0")

    method = data.get("method")
    if not isinstance(method, str) or not method:
        raise DecodeError("'method' must be a non-empty string")

    _optional_string(data, "notes")
    _optional_string(data, "mood")

    if not is_valid_date(data.get("timestamp")):
        raise DecodeError("'timestamp' must be a valid ISO-8601 date")

    created_at = data.get("createdAt")
    return Entry(
        id=entry_id,
        amount=amount,
        method=method,
        timestamp=data["timestamp"],
        notes=data.get("notes") or "",
        mood=data.get("mood"),
        created_at=created_at if isinstance(created_at, str) else None,
    )


def validate_entry(candidate: Any) -> bool:
    """True if candidate is a well-formed entry record. Never raises."""
    try:
        decode_entry(candidate)
    except DecodeError:
        return False
    except Exception:
        logger.exception("Entry validation error")
        return False
    return True


# ── Goal ────────────────────────────────────────────────────────────────────

def decode_goal(candidate: Any) -> Goal:
    data = _require_mapping(candidate, "goal")

    weekly = data.get("weeklyAmount")
    if not is_number(weekly) or weekly < 0:
        raise DecodeError("'weeklyAmount' must be a number >= 0")

    goal_type = data.get("goalType")
    if goal_type not in GOAL_TYPES:
        raise DecodeError(f"'goalType' must be one of {', '.join(GOAL_TYPES)}")

    # stashAmount is optional, but a present key must hold a valid number
    if "stashAmount" in data:
        stash = data["stashAmount"]
        if not is_number(stash) or stash < 0:
            raise DecodeError("'stashAmount' must be a number >= 0")
    else:
        stash = 0

    start = data.get("startDate")
    stash_start = data.get("stashStartDate")
    return Goal(
        goal_type=goal_type,
        weekly_amount=weekly,
        stash_amount=stash,
        start_date=start if isinstance(start, str) else None,
        stash_start_date=stash_start if isinstance(stash_start, str) else None,
    )


def validate_goal(candidate: Any) -> bool:
    try:
        decode_goal(candidate)
    except DecodeError:
        return False
    except Exception:
        logger.exception("Goal validation error")
        return False
    return True


# ── Settings ────────────────────────────────────────────────────────────────

def decode_settings(candidate: Any) -> Settings:
    data = _require_mapping(candidate, "settings")

    price = data.get("pricePerGram")
    if not is_number(price) or price < 0:
        raise DecodeError("'pricePerGram' must be a number >= 0")

    currency = data.get("currency")
    if not isinstance(currency, str) or not currency:
        raise DecodeError("'currency' must be a non-empty string")

    return Settings(price_per_gram=price, currency=currency)


def validate_settings(candidate: Any) -> bool:
    try:
        decode_settings(candidate)
    except DecodeError:
        return False
    except Exception:
        logger.exception("Settings validation error")
        return False
    return True


# ── Alternatives ────────────────────────────────────────────────────────────

def decode_alternatives(candidate: Any) -> AlternativesState:
    data = _require_mapping(candidate, "alternatives")

    tried = data.get("triedItems")
    if not isinstance(tried, list):
        raise DecodeError("'triedItems' must be a list")

    state = AlternativesState(
        last_refresh=data.get("lastRefresh") if isinstance(data.get("lastRefresh"), str) else None,
    )
    for item in tried:
        if isinstance(item, str):
            state.mark_tried(item)
    return state


def validate_alternatives(candidate: Any) -> bool:
    try:
        decode_alternatives(candidate)
    except DecodeError:
        return False
    except Exception:
        logger.exception("Alternatives validation error")
        return False
    return True
