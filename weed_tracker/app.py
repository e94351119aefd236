"""
Composition root: logging setup and wiring of the storage and service layers.

The presentation layer calls open_tracker() once at start-up and keeps the
returned objects for the lifetime of the process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from weed_tracker.data.database import Database
from weed_tracker.data.repository import Repository
from weed_tracker.services.persistence import PersistenceGateway
from weed_tracker.services.refresh_service import RefreshService
from weed_tracker.services.statistics import TimeSince
from weed_tracker.services.tracker import TrackerService

LOG_FILE = "weed_tracker.log"


def setup_logging(log_file: Optional[str] = LOG_FILE) -> None:
    handlers: list = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


@dataclass
class TrackerApp:
    database: Database
    gateway: PersistenceGateway
    tracker: TrackerService
    refresh: Optional[RefreshService] = None

    def start_refresh(
        self,
        on_time_since: Optional[Callable[[TimeSince], None]] = None,
        on_time_field: Optional[Callable[[str], None]] = None,
    ) -> RefreshService:
        """Build and start the periodic timers. Needs a running Qt application."""
        if self.refresh is None:
            self.refresh = RefreshService(
                self.tracker, on_time_since=on_time_since, on_time_field=on_time_field)
        self.refresh.start()
        return self.refresh

    def close(self) -> None:
        if self.refresh is not None:
            self.refresh.stop()
        self.database.close()


def open_tracker(
    db_path: Optional[Path] = None,
    on_warning: Optional[Callable[[str], None]] = None,
) -> TrackerApp:
    """Connect to the database and load the tracker state from it."""
    database = Database(db_path)
    repo = Repository(database.connect())
    gateway = PersistenceGateway(repo, on_warning=on_warning)
    tracker = TrackerService(gateway)
    logging.getLogger(__name__).info("Tracker ready (%s)", database.db_path)
    return TrackerApp(database=database, gateway=gateway, tracker=tracker)
