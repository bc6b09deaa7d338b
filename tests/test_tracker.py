"""Tests for ProgressTracker."""

import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from models.tracking import EPOCH, ProcessingRecord, RecordStatus, RecordType
from storage.tracker import ProgressTracker


def _old(record: ProcessingRecord, days: int) -> ProcessingRecord:
    return record.model_copy(update={"processed_at": datetime.now(timezone.utc) - timedelta(days=days)})


def test_empty_tracker(tracker):
    assert tracker.load_records() == []
    assert not tracker.is_item_done(1)
    stats = tracker.get_stats()
    assert stats.last_processed_at == EPOCH
    assert stats.total_processed == stats.total_errors == stats.total_skipped == 0
    assert stats.last_max_item_id == 0


@pytest.mark.parametrize(
    "record, done",
    [
        (ProcessingRecord.for_item(1, RecordStatus.SUCCESS), True),
        (ProcessingRecord.for_analysis(1, RecordStatus.SUCCESS), True),
        (ProcessingRecord.for_item(1, RecordStatus.SKIPPED, "dead"), False),
        (ProcessingRecord.for_item(1, RecordStatus.ERROR, "boom"), False),
        (ProcessingRecord.for_analysis(1, RecordStatus.ERROR, "parse"), False),
        (ProcessingRecord.for_analysis(1, RecordStatus.SKIPPED, "exists"), False),
        (ProcessingRecord.for_brief(1, "brief-1-1000"), False),
    ],
)
def test_dedup_gate(tracker, record, done):
    tracker.record_outcome(record)
    assert tracker.is_item_done(1) is done
    assert not tracker.is_item_done(2)


def test_record_outcome_appends_without_dedup(tracker):
    record = ProcessingRecord.for_item(5, RecordStatus.SKIPPED, "Already processed")
    tracker.record_outcome(record)
    tracker.record_outcome(record)

    records = tracker.load_records()
    assert len(records) == 2
    assert records[0].id == "story-5"
    assert records[0].type is RecordType.SOURCE_ITEM

    lines = tracker.records_path.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[0])["itemId"] == 5
    assert json.loads(lines[0])["errorMessage"] == "Already processed"


def test_torn_trailing_line_is_skipped(tracker, caplog):
    tracker.record_outcome(ProcessingRecord.for_analysis(1, RecordStatus.SUCCESS))
    with open(tracker.records_path, "a", encoding="utf-8") as f:
        f.write('{"id": "analysis-2", "type": "anal')

    with caplog.at_level(logging.WARNING, logger="storage.tracker"):
        records = tracker.load_records()
    assert [r.item_id for r in records] == [1]
    assert "malformed tracker record" in caplog.text

    # The next append starts on a fresh line
    tracker.record_outcome(ProcessingRecord.for_analysis(3, RecordStatus.SUCCESS))
    assert [r.item_id for r in tracker.load_records()] == [1, 3]
    assert tracker.is_item_done(3)


def test_prune_drops_old_records_only(tracker):
    tracker.record_outcome(_old(ProcessingRecord.for_analysis(1, RecordStatus.SUCCESS), days=40))
    tracker.record_outcome(_old(ProcessingRecord.for_analysis(2, RecordStatus.SUCCESS), days=5))
    tracker.record_outcome(ProcessingRecord.for_analysis(3, RecordStatus.SUCCESS))
    tracker.update_stats(total_processed=3)

    assert tracker.prune(30) == 1
    assert [r.item_id for r in tracker.load_records()] == [2, 3]
    assert tracker.get_stats().total_processed == 3
    assert tracker.prune(30) == 0


def test_update_stats_merges(tracker):
    tracker.update_stats(total_processed=3, total_errors=1)
    tracker.update_stats(last_max_item_id=1005, last_new_stories_count=500)

    stats = tracker.get_stats()
    assert stats.total_processed == 3
    assert stats.total_errors == 1
    assert stats.last_max_item_id == 1005
    assert stats.last_new_stories_count == 500
    assert stats.last_processed_at > EPOCH

    on_disk = json.loads(tracker.stats_path.read_text(encoding="utf-8"))
    assert on_disk["totalProcessed"] == 3
    assert on_disk["lastMaxItemId"] == 1005


def test_update_stats_rejects_unknown_fields(tracker):
    with pytest.raises(ValueError):
        tracker.update_stats(total_processd=1)


def test_has_new_work(tracker):
    assert tracker.has_new_work(1, 0)
    tracker.update_stats(last_max_item_id=1000, last_new_stories_count=500)

    assert not tracker.has_new_work(1000, 500)
    assert tracker.has_new_work(1001, 500)
    assert tracker.has_new_work(1000, 499)
    assert not tracker.has_new_work(999, 500)


def test_recent_activity(tracker):
    tracker.record_outcome(_old(ProcessingRecord.for_item(1, RecordStatus.SKIPPED), days=2))
    tracker.record_outcome(ProcessingRecord.for_item(2, RecordStatus.SKIPPED))
    tracker.record_outcome(ProcessingRecord.for_item(3, RecordStatus.SKIPPED))

    recent = tracker.recent_activity(hours=24)
    assert {r.item_id for r in recent} == {2, 3}
    assert recent[0].processed_at >= recent[1].processed_at


def test_state_survives_new_instance(config, tracker):
    tracker.record_outcome(ProcessingRecord.for_analysis(8, RecordStatus.SUCCESS))
    tracker.update_stats(total_processed=1)

    reopened = ProgressTracker(config.tracker_dir)
    assert reopened.is_item_done(8)
    assert reopened.get_stats().total_processed == 1
