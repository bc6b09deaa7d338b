"""Tests for the read-only CLI commands."""

import argparse
import json
from datetime import datetime, timezone

from briefs import build_brief
from main import cmd_briefs, cmd_status, cmd_trends
from models.analysis import AnalysisFailure, AnalysisResult
from models.tracking import ProcessingRecord, RecordStatus

from conftest import make_item

NOW = datetime(2026, 2, 3, tzinfo=timezone.utc)


def _save(store, item_id: int, tags: list[str]):
    analysis = AnalysisResult(
        id=AnalysisResult.make_id(item_id),
        title=f"Story {item_id}",
        summary=f"Summary {item_id}",
        key_points=[],
        technical_insights=[],
        trends=[],
        tags=tags,
    )
    brief = build_brief(make_item(item_id), analysis, now=NOW.replace(minute=item_id))
    store.save_brief(brief)
    return brief


def test_briefs_json_listing(config, store, capsys):
    _save(store, 1, ["rust"])
    _save(store, 2, ["python"])

    args = argparse.Namespace(search=None, tag="python", limit=20, json=True)
    assert cmd_briefs(args, config) == 0

    listed = json.loads(capsys.readouterr().out)
    assert [b["title"] for b in listed] == ["Story 2"]
    assert "createdAt" in listed[0]


def test_briefs_empty(config, capsys):
    args = argparse.Namespace(search="nothing", tag=None, limit=20, json=False)
    assert cmd_briefs(args, config) == 0
    assert "No briefs found." in capsys.readouterr().out


def test_trends_uses_blacklist(config, store, capsys):
    _save(store, 1, ["rust", "technology"])
    _save(store, 2, ["rust"])
    sentinel = AnalysisResult.sentinel(3, "Story 3", AnalysisFailure.PARSE)
    store.save_brief(build_brief(make_item(3), sentinel, now=NOW))

    args = argparse.Namespace(limit=10, report=False)
    assert cmd_trends(args, config) == 0

    data = json.loads(capsys.readouterr().out)
    assert [t["trend"] for t in data["topTrends"]] == ["rust"]
    assert data["statistics"]["totalBriefs"] == 2


def test_status(config, tracker, cache, capsys):
    cache.save(make_item(5))
    tracker.record_outcome(ProcessingRecord.for_analysis(5, RecordStatus.SUCCESS))
    tracker.update_stats(total_processed=1, last_max_item_id=5)

    assert cmd_status(argparse.Namespace(hours=24), config) == 0

    status = json.loads(capsys.readouterr().out)
    assert status["stats"]["total_processed"] == 1
    assert status["recent_activity"]["by_type_status"] == {"analysis/success": 1}
    assert status["cache"]["items"] == 1
