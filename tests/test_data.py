"""Unit tests for the data layer (models, validators, repository, gateway)."""

import json
import sqlite3
import pytest
from datetime import datetime, timedelta, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from weed_tracker.data.database import SCHEMA_SQL, Database
from weed_tracker.data.models import Entry, Goal, Settings, parse_timestamp, sort_entries
from weed_tracker.data.repository import Repository
from weed_tracker.data.validators import (
    decode_alternatives,
    decode_entry,
    validate_entry,
    validate_goal,
    loads_strict,
    validate_settings,
)
from weed_tracker.services.persistence import PersistenceGateway

NOW = datetime(2024, 5, 15, 12, 0)


def _conn():
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA_SQL)
    conn.commit()
    return conn


@pytest.fixture
def repo():
    """Create an in-memory database for testing."""
    return Repository(_conn())


@pytest.fixture
def warnings():
    return []


@pytest.fixture
def gateway(repo, warnings):
    return PersistenceGateway(repo, on_warning=warnings.append)


@pytest.fixture
def broken_gateway(warnings):
    """Gateway over a closed connection: every SQL call fails."""
    conn = _conn()
    conn.close()
    return PersistenceGateway(Repository(conn), on_warning=warnings.append)


def _raw_entry(**overrides):
    data = {"id": 1, "amount": 0.5, "method": "joint", "timestamp": "2024-05-15T10:00"}
    data.update(overrides)
    return data


class TestModels:
    def test_parse_naive_timestamp(self):
        assert parse_timestamp("2024-05-15T10:30") == datetime(2024, 5, 15, 10, 30)

    def test_parse_utc_timestamp_to_local(self):
        expected = datetime(2024, 5, 15, 10, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert parse_timestamp("2024-05-15T10:00:00Z") == expected

    def test_parse_rejects_garbage(self):
        assert parse_timestamp("yesterday-ish") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(12345) is None
        assert parse_timestamp(None) is None

    def test_entry_to_dict_omits_absent_mood(self):
        entry = Entry(id=1, amount=1.0, method="bong", timestamp="2024-05-15T10:00")
        data = entry.to_dict()
        assert "mood" not in data
        assert data["notes"] == ""
        assert data["timestamp"] == "2024-05-15T10:00"

    def test_sort_newest_first_and_stable(self):
        a = Entry(id=1, amount=1, method="joint", timestamp="2024-05-14T10:00")
        b = Entry(id=2, amount=1, method="joint", timestamp="2024-05-15T10:00")
        c = Entry(id=3, amount=1, method="joint", timestamp="2024-05-14T10:00")
        result = sort_entries([a, b, c])
        assert [e.id for e in result] == [2, 1, 3]

    def test_goal_defaults(self):
        goal = Goal()
        assert goal.to_dict() == {
            "weeklyAmount": 0,
            "goalType": "reduce",
            "startDate": None,
            "stashAmount": 0,
            "stashStartDate": None,
        }


class TestEntryValidator:
    def test_accepts_minimal_record(self):
        assert validate_entry(_raw_entry())

    def test_accepts_optional_fields(self):
        assert validate_entry(_raw_entry(notes="chill", mood="good", createdAt="2024-05-15T10:01:00"))
        assert validate_entry(_raw_entry(notes=None, mood=None))

    def test_rejects_missing_id(self):
        data = _raw_entry()
        del data["id"]
        assert not validate_entry(data)

    @pytest.mark.parametrize("bad_id", [0, "1", True, None])
    def test_rejects_bad_id(self, bad_id):
        assert not validate_entry(_raw_entry(id=bad_id))

    @pytest.mark.parametrize("amount", [0, -1, "2", float("nan"), float("inf"), float("-inf"), None])
    def test_rejects_bad_amount(self, amount):
        assert not validate_entry(_raw_entry(amount=amount))

    def test_rejects_non_string_method(self):
        assert not validate_entry(_raw_entry(method=5))
        assert not validate_entry(_raw_entry(method=""))

    def test_method_membership_not_checked(self):
        assert validate_entry(_raw_entry(method="hookah"))

    def test_rejects_non_string_optionals(self):
        assert not validate_entry(_raw_entry(notes=5))
        assert not validate_entry(_raw_entry(mood=["good"]))

    def test_rejects_invalid_timestamp(self):
        assert not validate_entry(_raw_entry(timestamp="not a date"))
        data = _raw_entry()
        del data["timestamp"]
        assert not validate_entry(data)

    @pytest.mark.parametrize("candidate", [None, [], "entry", 42])
    def test_rejects_non_records(self, candidate):
        assert not validate_entry(candidate)

    def test_decode_builds_entry(self):
        entry = decode_entry(_raw_entry(mood="great", createdAt="2024-05-15T10:01:00"))
        assert entry.mood == "great"
        assert entry.created_at == "2024-05-15T10:01:00"
        assert entry.when == datetime(2024, 5, 15, 10, 0)


class TestGoalAndSettingsValidators:
    def test_valid_goal(self):
        assert validate_goal(Goal().to_dict())
        assert validate_goal({"weeklyAmount": 3.5, "goalType": "quit"})

    def test_goal_rejects(self):
        assert not validate_goal(None)
        assert not validate_goal({"weeklyAmount": -1, "goalType": "reduce"})
        assert not validate_goal({"weeklyAmount": 1, "goalType": "binge"})
        assert not validate_goal({"goalType": "reduce"})
        assert not validate_goal({"weeklyAmount": 1, "goalType": "stash", "stashAmount": -3})
        assert not validate_goal({"weeklyAmount": 1, "goalType": "stash", "stashAmount": None})

    def test_infinite_amounts_rejected(self):
        assert not validate_goal({"weeklyAmount": float("inf"), "goalType": "reduce"})
        assert not validate_settings({"pricePerGram": float("inf"), "currency": "USD"})

    def test_loads_strict(self):
        assert loads_strict('{"a": [1, 2.5]}') == {"a": [1, 2.5]}
        for text in ('{"a": Infinity}', '[-Infinity]', '{"a": NaN}', "[" * 100000 + "]" * 100000):
            with pytest.raises(ValueError):
                loads_strict(text)

    def test_valid_settings(self):
        assert validate_settings({"pricePerGram": 0, "currency": "EUR"})

    def test_settings_rejects(self):
        assert not validate_settings({"pricePerGram": -1, "currency": "USD"})
        assert not validate_settings({"pricePerGram": 10, "currency": ""})
        assert not validate_settings({"pricePerGram": "10", "currency": "USD"})
        assert not validate_settings("USD")

    def test_alternatives_deduplicates(self):
        state = decode_alternatives({"triedItems": ["oral-Ice cubes", "oral-Ice cubes"], "lastRefresh": None})
        assert state.tried_items == ["oral-Ice cubes"]


class TestRepository:
    def test_set_get_overwrite(self, repo):
        assert repo.get("goal") is None
        repo.set("goal", "1")
        repo.set("goal", "2")
        assert repo.get("goal") == "2"

    def test_remove(self, repo):
        repo.set("settings", "{}")
        repo.remove("settings")
        assert repo.get("settings") is None

    def test_keys_prefix_is_literal(self, repo):
        repo.set("backup_1", "{}")
        repo.set("backupX1", "{}")
        repo.set("entries", "[]")
        assert repo.keys("backup_") == ["backup_1"]
        assert len(repo.keys()) == 3

    def test_database_creates_schema(self, tmp_path):
        db = Database(db_path=tmp_path / "test.db")
        r = Repository(db.connect())
        r.set("k", "v")
        assert r.get("k") == "v"
        db.close()


class TestPersistenceGateway:
    def test_missing_documents_give_defaults_silently(self, gateway, warnings):
        assert gateway.load_entries() == []
        assert gateway.load_goal() == Goal()
        assert gateway.load_settings() == Settings(price_per_gram=10, currency="USD")
        assert gateway.load_alternatives().tried_items == []
        assert warnings == []

    def test_corrupt_json_falls_back_with_warning(self, gateway, repo, warnings):
        repo.set("goal", "{not json")
        assert gateway.load_goal() == Goal()
        assert warnings == ["Failed to load goal settings. Using defaults."]

    def test_deeply_nested_document_falls_back(self, gateway, repo, warnings):
        repo.set("goal", "[" * 100000 + "]" * 100000)
        assert gateway.load_goal() == Goal()
        assert warnings == ["Failed to load goal settings. Using defaults."]

    def test_non_standard_constants_fall_back(self, gateway, repo, warnings):
        repo.set("settings", '{"pricePerGram": Infinity, "currency": "USD"}')
        assert gateway.load_settings().price_per_gram == 10
        assert warnings == ["Failed to load settings. Using defaults."]

    def test_save_refuses_non_finite(self, gateway, repo, warnings):
        assert gateway.save_settings(Settings(price_per_gram=float("inf"), currency="USD")) is False
        assert repo.get("settings") is None
        assert warnings == ["Failed to save settings. Please check your storage."]

    def test_invalid_shape_falls_back(self, gateway, repo, warnings):
        repo.set("settings", json.dumps({"pricePerGram": -5, "currency": "USD"}))
        assert gateway.load_settings().price_per_gram == 10
        assert len(warnings) == 1

    def test_entries_filtered_and_sorted(self, gateway, repo):
        raw = [
            _raw_entry(id=1, timestamp="2024-05-13T10:00"),
            _raw_entry(id=2, amount=0),
            _raw_entry(id=3, timestamp="2024-05-15T09:00"),
            "junk",
        ]
        repo.set("entries", json.dumps(raw))
        entries = gateway.load_entries()
        assert [e.id for e in entries] == [3, 1]

    def test_entries_not_a_list(self, gateway, repo, warnings):
        repo.set("entries", json.dumps({"id": 1}))
        assert gateway.load_entries() == []
        assert warnings

    def test_save_and_load_round_trip(self, gateway):
        entries = [Entry(id=5, amount=1.25, method="vape", timestamp="2024-05-15T08:00",
                         notes="n", mood="bad", created_at="2024-05-15T08:01:00")]
        assert gateway.save_entries(entries)
        assert gateway.load_entries() == entries

    def test_unavailable_store(self, broken_gateway, warnings):
        assert not broken_gateway.is_available()
        assert broken_gateway.load_goal() == Goal()
        assert broken_gateway.save_goal(Goal()) is False
        assert len(warnings) == 2

    def test_backup_retention(self, gateway):
        keys = []
        for i in range(7):
            keys.append(gateway.write_backup([], Goal(), Settings(), NOW + timedelta(minutes=i)))
        removed = gateway.cleanup_backups()
        assert removed == 2
        assert gateway.backup_keys() == list(reversed(keys))[:5]

    def test_backup_document_shape(self, gateway, repo):
        key = gateway.write_backup([], Goal(), Settings(), NOW)
        doc = json.loads(repo.get(key))
        assert set(doc) == {"entries", "goal", "settings", "backupDate"}
        assert key.startswith("backup_")
