"""
Repository — the single place where SQL lives.

A tiny key-value API (get / set / remove / keys) over the kv_store table.
The persistence gateway speaks only to this class, so tests can hand it an
in-memory connection and nothing else changes.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import List, Optional

logger = logging.getLogger(__name__)


class Repository:
    """Data-access layer wrapping a sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def get(self, key: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
            "updated_at = excluded.updated_at",
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    def remove(self, key: str) -> None:
        self.conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self.conn.commit()

    def keys(self, prefix: Optional[str] = None) -> List[str]:
        if prefix is None:
            rows = self.conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        else:
            # substr() instead of LIKE: '_' in key prefixes is a LIKE wildcard
            rows = self.conn.execute(
                "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [r[0] for r in rows]

    def reset_all_data(self) -> None:
        """Delete every stored document."""
        self.conn.execute("DELETE FROM kv_store")
        self.conn.commit()
        logger.warning("All stored documents have been removed.")


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   The Repository is the ONLY place raw SQL lives. The rest of the app sees
#   a dictionary-like store of JSON text documents.
#
# Key methods:
#   - get/set/remove: whole-document reads and overwrites (UPSERT).
#   - keys(prefix): enumerates backup_<ms> keys for retention cleanup.
#
# Interviewer-friendly talking points:
#   1. Repository pattern: swapping SQLite for a file or a browser-style
#      store only touches this file.
#   2. ON CONFLICT ... DO UPDATE gives an atomic overwrite per document, which
#      is all the transaction semantics this app needs.
