"""Progress tracker: append-only processing log plus rolling statistics.

Files (under DATA_DIR/tracker):
    processing-records.jsonl   One ProcessingRecord per line, append-only
    processing-stats.json      Single ProcessingStats object

The record log is the only dedup gate: an item is done once it has a
success record of type source-item or analysis. Records are appended with
a single write() under a lock and fsynced, so a reader never sees a partial
line from a live writer. A line torn by a crash is skipped on load.
"""

import json
import logging
import os
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from errors import StorageError, TrackerError
from models.tracking import ProcessingRecord, ProcessingStats
from storage.files import read_json, write_json_atomic, write_text_atomic

logger = logging.getLogger(__name__)

RECORDS_FILE = "processing-records.jsonl"
STATS_FILE = "processing-stats.json"


def _serialize(record: ProcessingRecord) -> str:
    return json.dumps(record.model_dump(mode="json", by_alias=True), ensure_ascii=False)


class ProgressTracker:
    """File-backed record log and statistics.

    Example:
        >>> tracker = ProgressTracker(Path("data/tracker"))
        >>> tracker.initialize()
        >>> tracker.record_outcome(ProcessingRecord.for_item(42, RecordStatus.SKIPPED))
        >>> tracker.is_item_done(42)
        False
    """

    def __init__(self, tracker_dir: Path | str):
        self.tracker_dir = Path(tracker_dir)
        self.records_path = self.tracker_dir / RECORDS_FILE
        self.stats_path = self.tracker_dir / STATS_FILE
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Create the tracker directory.

        Raises:
            StorageError: If the directory cannot be created
        """
        try:
            self.tracker_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot initialize tracker at {self.tracker_dir}: {e}") from e
        logger.debug("Tracker initialized | path=%s", self.tracker_dir)

    # === Record log ===

    def load_records(self) -> list[ProcessingRecord]:
        """Read every valid record in log order.

        Lines that are not valid records (a torn trailing write, hand edits)
        are logged and skipped.

        Raises:
            TrackerError: If the log exists but cannot be read
        """
        try:
            text = self.records_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise TrackerError(f"Failed to read {self.records_path}: {e}") from e

        records = []
        for lineno, line in enumerate(text.splitlines(), 1):
            if not line.strip():
                continue
            try:
                records.append(ProcessingRecord.model_validate_json(line))
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed tracker record | line=%d error=%s",
                    lineno, e.errors()[0]["msg"] if e.errors() else e,
                )
        return records

    def _needs_separator(self) -> bool:
        """True if the log ends without a newline (torn last write)."""
        try:
            with open(self.records_path, "rb") as f:
                f.seek(0, os.SEEK_END)
                if f.tell() == 0:
                    return False
                f.seek(-1, os.SEEK_END)
                return f.read(1) != b"\n"
        except FileNotFoundError:
            return False

    def record_outcome(self, record: ProcessingRecord) -> None:
        """Append a record to the log. Never rejects or deduplicates.

        Raises:
            TrackerError: If the record cannot be written
        """
        line = _serialize(record) + "\n"
        with self._lock:
            try:
                if self._needs_separator():
                    line = "\n" + line
                with open(self.records_path, "a", encoding="utf-8") as f:
                    f.write(line)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                raise TrackerError(f"Failed to append tracker record: {e}") from e

        logger.debug(
            "Outcome recorded | id=%s type=%s status=%s",
            record.id, record.type.value, record.status.value,
        )

    def done_item_ids(self) -> set[int]:
        """IDs of all items that have passed the dedup gate."""
        return {r.item_id for r in self.load_records() if r.marks_done}

    def is_item_done(self, item_id: int) -> bool:
        """True iff a success record of type source-item or analysis exists."""
        return any(r.item_id == item_id and r.marks_done for r in self.load_records())

    def prune(self, max_age_days: int) -> int:
        """Drop records older than max_age_days. Stats are untouched.

        Returns:
            Number of records removed
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=max_age_days)

        with self._lock:
            records = self.load_records()
            kept = [r for r in records if r.processed_at >= cutoff]
            removed = len(records) - len(kept)
            if removed == 0:
                return 0
            text = "".join(_serialize(r) + "\n" for r in kept)
            write_text_atomic(self.records_path, text)

        logger.info("Tracker pruned | removed=%d kept=%d days=%d", removed, len(kept), max_age_days)
        return removed

    def recent_activity(self, hours: int = 24) -> list[ProcessingRecord]:
        """Records from the last N hours, newest first."""
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
        recent = [r for r in self.load_records() if r.processed_at >= cutoff]
        recent.sort(key=lambda r: r.processed_at, reverse=True)
        return recent

    # === Statistics ===

    def get_stats(self) -> ProcessingStats:
        """Current statistics, or defaults when none have been written.

        Raises:
            StorageError: If the stats file exists but is unreadable
        """
        data = read_json(self.stats_path)
        if data is None:
            return ProcessingStats()
        try:
            return ProcessingStats.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Invalid stats file {self.stats_path}: {e}") from e

    def update_stats(self, **partial: Any) -> ProcessingStats:
        """Merge fields into the stored statistics and write them back.

        Counters are taken as given: callers pass already-incremented
        totals. last_processed_at defaults to now.

        Raises:
            ValueError: If a field name is unknown
            StorageError: If the stats cannot be written
        """
        unknown = set(partial) - set(ProcessingStats.model_fields)
        if unknown:
            raise ValueError(f"Unknown stats fields: {', '.join(sorted(unknown))}")

        with self._lock:
            merged = self.get_stats().model_dump()
            merged["last_processed_at"] = datetime.now(timezone.utc)
            merged.update(partial)
            stats = ProcessingStats.model_validate(merged)
            write_json_atomic(self.stats_path, stats.model_dump(mode="json", by_alias=True))

        logger.debug(
            "Stats updated | processed=%d errors=%d skipped=%d max_id=%d",
            stats.total_processed, stats.total_errors, stats.total_skipped, stats.last_max_item_id,
        )
        return stats

    def has_new_work(self, current_max_id: int, current_new_count: int) -> bool:
        """Cheap pre-filter: has the source moved since the last run?"""
        stats = self.get_stats()
        return (
            current_max_id > stats.last_max_item_id
            or current_new_count != stats.last_new_stories_count
        )
