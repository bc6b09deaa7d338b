"""Trend aggregation over stored briefs.

Trends are tag counts across briefs. Sentinel briefs (failed analyses)
never contribute. An optional blacklist drops tags that are too generic to
say anything about a trend ("technology", "software", ...).

Output mirrors what the web layer serves:
    topTrends: [{trend, count, relatedBriefs: [...]}]
    statistics: {totalTrends, totalBriefs, avgTrendsPerBrief}
    generatedAt: ISO timestamp
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from models.analysis import ERROR_TAG, LIMITED_INFO_TAG, SENTINEL_TAG
from models.brief import Brief

logger = logging.getLogger(__name__)


@dataclass
class TagBlacklist:
    """Tags excluded from trend aggregation, grouped by why they are noise."""

    error_tags: set[str] = field(default_factory=lambda: {
        ERROR_TAG, SENTINEL_TAG, LIMITED_INFO_TAG,
        "错误", "分析失败", "无法完成", "无法识别", "分析过程出错",
    })
    generic_tags: set[str] = field(default_factory=lambda: {
        "technology", "tech", "innovation", "future", "industry", "market",
        "business", "product", "platform", "tools", "solution",
        "技术", "科技", "创新", "发展", "未来", "行业", "市场", "商业",
        "产品", "服务", "平台", "系统", "应用", "工具", "方法", "解决方案",
        "技术分析", "行业趋势", "市场动态", "技术变革",
    })
    broad_tags: set[str] = field(default_factory=lambda: {
        "trends", "software", "software development", "hardware", "data",
        "internet", "programming", "development", "design", "open source",
        "趋势", "技术趋势", "技术创新", "软件", "软件开发", "硬件", "数据",
        "信息", "网络", "互联网", "数字化", "自动化", "编程", "开发", "设计",
        "开源",
    })
    custom: set[str] = field(default_factory=set)

    def all_tags(self) -> set[str]:
        return self.error_tags | self.generic_tags | self.broad_tags | self.custom

    def is_blacklisted(self, tag: str) -> bool:
        lowered = tag.lower()
        return tag in self.all_tags() or lowered in self.all_tags()

    def add(self, tag: str) -> None:
        self.custom.add(tag)

    def remove(self, tag: str) -> None:
        self.custom.discard(tag)

    def filter_tags(self, tags: Iterable[str]) -> list[str]:
        return [tag for tag in tags if not self.is_blacklisted(tag)]


@dataclass
class TrendEntry:
    trend: str
    count: int
    related_briefs: list[Brief] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "trend": self.trend,
            "count": self.count,
            "relatedBriefs": [
                {
                    "id": b.id,
                    "title": b.title,
                    "summary": b.summary,
                    "keyPoints": list(b.analysis.key_points),
                    "technicalInsights": list(b.analysis.technical_insights),
                    "trends": list(b.analysis.trends),
                }
                for b in self.related_briefs
            ],
        }


@dataclass
class TrendSummary:
    """Top trends plus aggregate statistics."""

    top_trends: list[TrendEntry] = field(default_factory=list)
    total_trends: int = 0
    total_briefs: int = 0
    avg_trends_per_brief: float = 0.0
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "topTrends": [entry.to_dict() for entry in self.top_trends],
            "statistics": {
                "totalTrends": self.total_trends,
                "totalBriefs": self.total_briefs,
                "avgTrendsPerBrief": self.avg_trends_per_brief,
            },
            "generatedAt": self.generated_at.isoformat(),
        }


def aggregate_trends(
    briefs: list[Brief],
    max_trends: int = 10,
    related_per_trend: int = 3,
    min_occurrences: int = 1,
    blacklist: TagBlacklist | None = None,
) -> TrendSummary:
    """Count tags across non-sentinel briefs and return the most common.

    Args:
        briefs: Briefs to aggregate (typically newest first)
        max_trends: Number of trends to return
        related_per_trend: Briefs listed under each trend
        min_occurrences: Drop tags seen fewer times than this
        blacklist: Tags to ignore; None keeps every tag

    Returns:
        TrendSummary with ties broken by first appearance
    """
    valid = [b for b in briefs if not b.is_sentinel]

    counts: Counter[str] = Counter()
    related: dict[str, list[Brief]] = {}
    for brief in valid:
        tags = blacklist.filter_tags(brief.tags) if blacklist else brief.tags
        for tag in tags:
            counts[tag] += 1
            related.setdefault(tag, []).append(brief)

    top = [
        TrendEntry(trend=tag, count=count, related_briefs=related[tag][:related_per_trend])
        for tag, count in counts.most_common()
        if count >= min_occurrences
    ][:max_trends]

    total_briefs = len(valid)
    avg = sum(counts.values()) / total_briefs if total_briefs else 0.0

    logger.debug(
        "Trends aggregated | briefs=%d excluded=%d tags=%d",
        total_briefs, len(briefs) - total_briefs, len(counts),
    )
    return TrendSummary(
        top_trends=top,
        total_trends=len(counts),
        total_briefs=total_briefs,
        avg_trends_per_brief=round(avg, 2),
    )
