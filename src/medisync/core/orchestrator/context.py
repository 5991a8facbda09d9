"""
Run context threaded through the traversal, the activity tracker and the
logger adapters.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..logging import ContextualLogger, get_contextual_logger


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunStats:
    """Statistics for a sync run."""

    patients_processed: int = 0
    patients_created: int = 0
    patients_updated: int = 0
    patients_skipped: int = 0
    non_patient_rows: int = 0
    pages_visited: int = 0
    retries: int = 0

    started_at: datetime = field(default_factory=_now)
    finished_at: datetime | None = None

    # (page_index, patient_index) of the last patient fully processed
    last_position: tuple[int, int] | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Get run duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def record_action(self, action: str) -> None:
        self.patients_processed += 1
        if action == "created":
            self.patients_created += 1
        elif action == "updated":
            self.patients_updated += 1
        else:
            self.patients_skipped += 1

    def finish(self) -> None:
        self.finished_at = _now()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "patients_processed": self.patients_processed,
            "patients_created": self.patients_created,
            "patients_updated": self.patients_updated,
            "patients_skipped": self.patients_skipped,
            "non_patient_rows": self.non_patient_rows,
            "pages_visited": self.pages_visited,
            "retries": self.retries,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class RunContext:
    """Identity and statistics of one sync run."""

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    stats: RunStats = field(default_factory=RunStats)

    # Position the traversal is working on; reported when a run aborts
    position: tuple[int, int] | None = None

    def logger(self, name: str) -> ContextualLogger:
        """Logger adapter tagging every record with this run id."""
        return get_contextual_logger(name, run_id=self.run_id)
