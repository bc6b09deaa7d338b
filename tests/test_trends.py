"""Tests for trend aggregation and the tag blacklist."""

from datetime import datetime, timedelta, timezone

from briefs import build_brief
from models.analysis import AnalysisFailure, AnalysisResult
from trends import TagBlacklist, aggregate_trends

from conftest import make_item

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def _brief(item_id: int, tags: list[str]):
    analysis = AnalysisResult(
        id=AnalysisResult.make_id(item_id),
        title=f"Story {item_id}",
        summary=f"Summary {item_id}",
        key_points=["k"],
        technical_insights=["i"],
        trends=["t"],
        tags=tags,
    )
    return build_brief(make_item(item_id), analysis, now=NOW - timedelta(minutes=item_id))


def _sentinel(item_id: int):
    analysis = AnalysisResult.sentinel(item_id, f"Story {item_id}", AnalysisFailure.PARSE)
    return build_brief(make_item(item_id), analysis, now=NOW)


def test_counts_exclude_sentinels():
    briefs = [
        _brief(1, ["rust", "web"]),
        _brief(2, ["rust"]),
        _sentinel(3),
        _sentinel(4),
    ]
    summary = aggregate_trends(briefs)

    assert [(e.trend, e.count) for e in summary.top_trends] == [("rust", 2), ("web", 1)]
    assert summary.total_briefs == 2
    assert summary.total_trends == 2
    assert summary.avg_trends_per_brief == 1.5
    assert all(e.trend not in ("error", "analysis-failed") for e in summary.top_trends)


def test_ties_keep_first_appearance():
    summary = aggregate_trends([_brief(1, ["b", "a"]), _brief(2, ["c"])])
    assert [e.trend for e in summary.top_trends] == ["b", "a", "c"]


def test_related_briefs_capped():
    briefs = [_brief(i, ["ai"]) for i in range(1, 6)]
    summary = aggregate_trends(briefs)

    entry = summary.top_trends[0]
    assert entry.count == 5
    assert [b.item_id for b in entry.related_briefs] == [1, 2, 3]


def test_max_trends_and_min_occurrences():
    briefs = [_brief(1, ["a", "b", "c"]), _brief(2, ["a", "b"]), _brief(3, ["a"])]

    assert [e.trend for e in aggregate_trends(briefs, max_trends=2).top_trends] == ["a", "b"]
    assert [e.trend for e in aggregate_trends(briefs, min_occurrences=2).top_trends] == ["a", "b"]
    assert aggregate_trends(briefs, min_occurrences=2).total_trends == 3


def test_empty_input():
    summary = aggregate_trends([_sentinel(1)])
    assert summary.top_trends == []
    assert summary.total_briefs == 0
    assert summary.avg_trends_per_brief == 0.0


def test_average_rounded():
    briefs = [_brief(1, ["a"]), _brief(2, ["a", "b"]), _brief(3, ["a"])]
    assert aggregate_trends(briefs).avg_trends_per_brief == 1.33


def test_blacklist_filters_generic_tags():
    briefs = [_brief(1, ["Technology", "rust", "软件"]), _brief(2, ["rust", "software"])]

    plain = aggregate_trends(briefs)
    assert {e.trend for e in plain.top_trends} == {"Technology", "rust", "软件", "software"}

    filtered = aggregate_trends(briefs, blacklist=TagBlacklist())
    assert [(e.trend, e.count) for e in filtered.top_trends] == [("rust", 2)]


def test_blacklist_custom_tags():
    blacklist = TagBlacklist()
    assert not blacklist.is_blacklisted("kubernetes")
    blacklist.add("kubernetes")
    assert blacklist.is_blacklisted("kubernetes")
    assert blacklist.filter_tags(["kubernetes", "rust"]) == ["rust"]
    blacklist.remove("kubernetes")
    assert not blacklist.is_blacklisted("kubernetes")
    assert "error" in blacklist.all_tags()


def test_to_dict_shape():
    summary = aggregate_trends([_brief(1, ["rust"])])
    data = summary.to_dict()

    assert data["statistics"] == {"totalTrends": 1, "totalBriefs": 1, "avgTrendsPerBrief": 1.0}
    related = data["topTrends"][0]["relatedBriefs"][0]
    assert data["topTrends"][0]["trend"] == "rust"
    assert related["title"] == "Story 1"
    assert related["keyPoints"] == ["k"]
    assert related["technicalInsights"] == ["i"]
    assert "generatedAt" in data
