"""
Submission Repository - In-Memory Storage for Collection Submissions

Provides storage and retrieval for submissions and their items.
Items are kept in their own table keyed by submission ID, as in the
relational store this stands in for.

Every write runs under the repository lock and is flushed to the optional
JSON file before the lock is released. If the flush fails the in-memory
change is rolled back, so a write either fully happens or not at all.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from core.submission.schema import Submission, SubmissionItem, SubmissionStatus


logger = logging.getLogger(__name__)


# =============================================================================
# Write Outcomes
# =============================================================================


@dataclass(frozen=True)
class ConditionalWrite:
    """
    Outcome of a conditional update or delete.

    ``applied`` is False when the row exists but did not match the
    expected status; ``current`` then holds the row as it is now.
    ``current`` is None only when the row does not exist.
    """

    applied: bool
    current: Optional[Submission]


# =============================================================================
# Repository
# =============================================================================


class SubmissionRepository:
    """
    Repository for storing and retrieving submissions.

    Provides CRUD operations and querying capabilities.
    Uses in-memory storage with optional file persistence.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise repository.

        Args:
            persist_path: Optional path to persist data to JSON file
        """
        self._rows: dict[str, Submission] = {}  # submission_id -> row without items
        self._items: dict[str, tuple[SubmissionItem, ...]] = {}  # submission_id -> items
        self._lock = threading.Lock()
        self._persist_path = Path(persist_path) if persist_path else None

        # Load existing data if persist path exists
        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        rows = {}
        for sid, row in self._rows.items():
            row_data = row.to_dict()
            row_data.pop("items")
            row_data.pop("total_weight")
            rows[sid] = row_data

        data = {
            "submissions": rows,
            "items": {
                sid: [item.to_dict() for item in items]
                for sid, items in self._items.items()
            },
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._persist_path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data, indent=2))
        tmp_path.replace(self._persist_path)

    def _load_from_file(self) -> None:
        """Load data from file."""
        if not self._persist_path or not self._persist_path.exists():
            return

        try:
            data = json.loads(self._persist_path.read_text())
            for sid, row_data in data.get("submissions", {}).items():
                self._rows[sid] = Submission.from_dict(row_data)
            for sid, items_data in data.get("items", {}).items():
                self._items[sid] = tuple(SubmissionItem.from_dict(i) for i in items_data)
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            # Start fresh rather than refuse to boot
            logger.warning("Could not load submission data from %s: %s", self._persist_path, e)

    def _hydrate(self, row: Submission) -> Submission:
        return replace(row, items=self._items.get(row.submission_id, ()))

    def _commit(self, rollback) -> None:
        """Flush to disk, undoing the in-memory change if the flush fails."""
        try:
            self._save_to_file()
        except OSError:
            rollback()
            raise

    # =========================================================================
    # CRUD Operations
    # =========================================================================

    def add(self, submission: Submission) -> Submission:
        """
        Store a submission together with its items.

        Args:
            submission: New submission (items attached)

        Returns:
            Stored submission

        Raises:
            ValueError: If submission_id already exists
        """
        sid = submission.submission_id
        with self._lock:
            if sid in self._rows:
                raise ValueError(f"Submission {sid} already exists")

            self._rows[sid] = replace(submission, items=())
            self._items[sid] = tuple(submission.items)

            def rollback() -> None:
                self._rows.pop(sid, None)
                self._items.pop(sid, None)

            self._commit(rollback)
            return self._hydrate(self._rows[sid])

    def get(self, submission_id: str) -> Optional[Submission]:
        """
        Get a submission by ID.

        Returns:
            Submission if found, None otherwise
        """
        with self._lock:
            row = self._rows.get(submission_id)
            return self._hydrate(row) if row else None

    def update_status_if(
        self,
        submission_id: str,
        expected: SubmissionStatus,
        new_status: SubmissionStatus,
    ) -> ConditionalWrite:
        """
        Set status to ``new_status`` where the current status is ``expected``.

        Args:
            submission_id: Submission ID
            expected: Status the row must currently have
            new_status: Status to write

        Returns:
            ConditionalWrite describing what happened
        """
        with self._lock:
            row = self._rows.get(submission_id)
            if row is None:
                return ConditionalWrite(applied=False, current=None)
            if row.status != expected:
                return ConditionalWrite(applied=False, current=self._hydrate(row))

            self._rows[submission_id] = row.with_status(new_status)

            def rollback() -> None:
                self._rows[submission_id] = row

            self._commit(rollback)
            return ConditionalWrite(applied=True, current=self._hydrate(self._rows[submission_id]))

    def delete_if(
        self,
        submission_id: str,
        allowed: Iterable[SubmissionStatus],
    ) -> ConditionalWrite:
        """
        Delete a submission and all its items if its status is in ``allowed``.

        Args:
            submission_id: Submission ID
            allowed: Statuses from which deletion is permitted

        Returns:
            ConditionalWrite; ``current`` is the deleted row when applied
        """
        allowed = frozenset(allowed)
        with self._lock:
            row = self._rows.get(submission_id)
            if row is None:
                return ConditionalWrite(applied=False, current=None)
            hydrated = self._hydrate(row)
            if row.status not in allowed:
                return ConditionalWrite(applied=False, current=hydrated)

            del self._rows[submission_id]
            items = self._items.pop(submission_id, ())

            def rollback() -> None:
                self._rows[submission_id] = row
                self._items[submission_id] = items

            self._commit(rollback)
            return ConditionalWrite(applied=True, current=hydrated)

    # =========================================================================
    # Query Operations
    # =========================================================================

    def _sorted(self, rows: Iterable[Submission]) -> list[Submission]:
        # sorted() is stable with reverse=True, so ties keep insertion order
        return sorted(
            (self._hydrate(row) for row in rows),
            key=lambda s: s.collected_at,
            reverse=True,
        )

    def list_all(self) -> list[Submission]:
        """Get all submissions, most recently collected first."""
        with self._lock:
            return self._sorted(self._rows.values())

    def list_by_owner(self, owner_id: str) -> list[Submission]:
        """Get submissions owned by an actor, most recently collected first."""
        with self._lock:
            return self._sorted(r for r in self._rows.values() if r.owner_id == owner_id)

    def list_by_status(self, status: SubmissionStatus) -> list[Submission]:
        """Get submissions by status."""
        with self._lock:
            return self._sorted(r for r in self._rows.values() if r.status == status)

    def count(self) -> int:
        """Get total number of submissions."""
        return len(self._rows)

    def count_items(self, submission_id: Optional[str] = None) -> int:
        """Count item rows, optionally for one submission."""
        with self._lock:
            if submission_id is not None:
                return len(self._items.get(submission_id, ()))
            return sum(len(items) for items in self._items.values())

    def references_zone(self, zone_id: str) -> bool:
        """Check whether any submission points at a zone."""
        with self._lock:
            return any(r.zone_id == zone_id for r in self._rows.values())
