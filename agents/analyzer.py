"""Analyzer agent: one model call per Hacker News item.

This module implements the AnalyzerAgent, which turns an Item into an
AnalysisResult. The model is treated as a text-in/text-out service; the
agent owns the prompt, reply classification and the parse cascade.

Reply handling:
    1. Upstream error phrasing ("API Error:", "Rate limit exceeded", ...)
       -> UpstreamModelError, no retry within the call
    2. Could-not-fetch-URL phrasing -> limited-info sentinel
    3. Parse cascade (strict, repaired, regex) -> AnalysisResult
    4. Nothing parsable -> parse-failure sentinel

Phrases are matched only against prose outside the reply's JSON object so
an analysis that talks about "rate limits" is not treated as an error.

analyze() never raises; run_analysis() raises UpstreamModelError so the
pipeline can record the error without persisting a sentinel.
"""

import asyncio
import html
import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import AsyncIterator, Iterable

from pydantic import ValidationError

from agents.model_service import ModelService, PydanticAIModelService
from agents.parsing import parse_reply, prose_outside_json
from config import Config
from errors import UpstreamModelError
from models.analysis import AnalysisFailure, AnalysisResult
from models.item import Item

logger = logging.getLogger(__name__)

# Maximum characters of item body text to include in the prompt
MAX_TEXT_CHARS = 4000

UPSTREAM_ERROR_PATTERNS = (
    "api error:",
    "connection error",
    "authentication failed",
    "rate limit exceeded",
    "service unavailable",
    "internal server error",
    "bad request",
    "unauthorized",
    "forbidden",
    "not found",
)

FETCH_FAILURE_PATTERNS = (
    "the webfetch tool failed to retrieve content from the provided url",
    "webfetch tool failed",
    "failed to retrieve content",
    "unable to fetch content",
    "fetch error",
    "network error",
    "connection timeout",
)


# === Prompts ===

ANALYSIS_PROMPTS = {
    "en": """Analyze the following Hacker News item and provide technical trend insights.

Title: {title}
Content: {text}
Type: {type}
URL: {url}

Notes:
- If the linked URL cannot be retrieved, analyze only the title, content and type above
- Do not try to access external links; focus on the information provided
- When information is limited, make reasonable technical inferences from the title and type

Analyze along these dimensions:
1. summary - a concise summary of the core content
2. keyPoints - important technical concepts, tools or methods
3. technicalInsights - technical value, novelty or potential impact
4. trends - related technology trends or directions
5. tags - short classification tags

Reply with exactly one valid JSON object and no other text. Use an empty array
for any dimension that yields nothing.

{{
  "summary": "summary of the content",
  "keyPoints": ["point 1", "point 2"],
  "technicalInsights": ["insight 1", "insight 2"],
  "trends": ["trend 1", "trend 2"],
  "tags": ["tag 1", "tag 2", "tag 3"]
}}""",

    "zh": """请分析以下HackerNews项目，提供深度的技术趋势洞察：

标题: {title}
内容: {text}
类型: {type}
链接: {url}

重要说明：
- 如果无法获取链接内容，请仅基于上述标题、内容和类型信息进行分析
- 不要尝试访问外部链接，专注于分析已有的信息
- 如果信息有限，请基于标题和类型进行合理的推断分析

请从以下维度进行专业分析：
1. summary - 内容摘要
2. keyPoints - 关键技术点
3. technicalInsights - 技术洞察
4. trends - 行业趋势
5. tags - 中文分类标签

请用中文回答，并且只返回一个有效的JSON对象，不要包含任何解释性文字。
某个维度没有内容时返回空数组。

{{
  "summary": "内容的中文摘要",
  "keyPoints": ["关键技术点1", "关键技术点2"],
  "technicalInsights": ["技术洞察1", "技术洞察2"],
  "trends": ["相关趋势1", "相关趋势2"],
  "tags": ["标签1", "标签2", "标签3"]
}}""",
}

TREND_REPORT_PROMPTS = {
    "en": """Based on the following analyses of Hacker News items, write a technology trend report.

{analyses}

Include:
1. An executive summary of the main trends
2. Key technical developments
3. Emerging technologies or methodologies
4. Suggestions for further investigation

Write a well-structured Markdown report with clear sections.""",

    "zh": """基于以下HackerNews项目的分析结果，请生成一份综合的技术趋势报告：

{analyses}

请提供：
1. 主要趋势的执行摘要
2. 关键技术发展
3. 新兴技术或方法论
4. 进一步调查的建议

请用中文生成一份结构清晰的Markdown格式报告。""",
}

_TAG_RE = re.compile(r"<[^>]+>")


def _clean_text(text: str | None) -> str:
    """HN body text is HTML; flatten it for the prompt."""
    if not text:
        return ""
    text = _TAG_RE.sub(" ", text.replace("<p>", "\n\n"))
    return html.unescape(text).strip()


def build_prompt(item: Item, language: str = "en") -> str:
    """Render the analysis prompt for an item."""
    text = _clean_text(item.text)
    if len(text) > MAX_TEXT_CHARS:
        text = text[:MAX_TEXT_CHARS] + "... [truncated]"
    template = ANALYSIS_PROMPTS.get(language, ANALYSIS_PROMPTS["en"])
    return template.format(
        title=item.title or "",
        text=text,
        type=item.type.value,
        url=item.url or "",
    )


def _matches_any(text: str, patterns: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(pattern in lowered for pattern in patterns)


def is_upstream_error(reply: str) -> bool:
    return _matches_any(prose_outside_json(reply), UPSTREAM_ERROR_PATTERNS)


def is_fetch_failure(reply: str) -> bool:
    return _matches_any(prose_outside_json(reply), FETCH_FAILURE_PATTERNS)


class AnalyzerAgent:
    """Analyzes Hacker News items through a ModelService.

    Example:
        >>> analyzer = AnalyzerAgent(config)
        >>> result = await analyzer.analyze(item)
        >>> result.is_sentinel
        False
    """

    def __init__(self, config: Config, model_service: ModelService | None = None):
        """Initialize the analyzer.

        Args:
            config: Application configuration (model, language, batching)
            model_service: Override the model backend (tests, alternative providers)
        """
        self.config = config
        self.language = config.language
        self.batch_size = config.batch_size
        self.batch_delay = config.batch_delay_seconds
        self._service = model_service or PydanticAIModelService(
            config.analyzer_model, language=config.language
        )

    async def _complete(self, prompt: str) -> str:
        try:
            return await self._service.complete(prompt)
        except Exception as e:
            raise UpstreamModelError(f"Model call failed ({type(e).__name__}): {e}") from e

    async def run_analysis(self, item: Item) -> AnalysisResult:
        """Analyze an item, raising on upstream model errors.

        Fetch failures and unparsable replies still yield sentinel results.

        Raises:
            UpstreamModelError: The model service failed or replied with an error
        """
        title = item.display_title
        reply = await self._complete(build_prompt(item, self.language))

        if is_upstream_error(reply):
            raise UpstreamModelError(f"Model reported an error for item {item.id}", reply=reply)

        if is_fetch_failure(reply):
            logger.info("Source content unavailable, using limited-info result | id=%d", item.id)
            return AnalysisResult.sentinel(item.id, title, AnalysisFailure.LIMITED_INFO)

        payload, strategy = parse_reply(reply)
        if payload is None:
            logger.warning(
                "Reply unparsable | id=%d preview=%r", item.id, reply[:200],
            )
            return AnalysisResult.sentinel(item.id, title, AnalysisFailure.PARSE)

        result = AnalysisResult.from_payload(item.id, title, payload)
        logger.info(
            "Analysis complete | id=%d strategy=%s points=%d tags=%d",
            item.id, strategy, len(result.key_points), len(result.tags),
        )
        return result

    async def analyze(self, item: Item) -> AnalysisResult:
        """Analyze an item. Never raises; failures become sentinels."""
        try:
            return await self.run_analysis(item)
        except UpstreamModelError as e:
            logger.error("Analysis failed | id=%d error=%s", item.id, e)
            return AnalysisResult.sentinel(item.id, item.display_title, AnalysisFailure.UPSTREAM)

    async def analyze_many(self, items: list[Item]) -> list[AnalysisResult]:
        """Analyze items in concurrent batches, pausing between batches."""
        results: list[AnalysisResult] = []
        total = len(items)
        for start in range(0, total, self.batch_size):
            batch = items[start:start + self.batch_size]
            results.extend(await asyncio.gather(*(self.analyze(item) for item in batch)))
            logger.info("Progress: %d/%d analyzed", len(results), total)
            if start + self.batch_size < total:
                await asyncio.sleep(self.batch_delay)
        return results

    async def analyze_stream(self, items: Iterable[Item]) -> AsyncIterator[AnalysisResult]:
        """Yield one result per item as soon as it is ready."""
        for item in items:
            yield await self.analyze(item)

    async def generate_trend_report(self, analyses: list[AnalysisResult]) -> str:
        """Model-written markdown trend report, or a deterministic fallback."""
        blocks = [
            "\n".join([
                f"Title: {a.title}",
                f"Summary: {a.summary}",
                f"Key points: {', '.join(a.key_points)}",
                f"Technical insights: {', '.join(a.technical_insights)}",
                f"Trends: {', '.join(a.trends)}",
                f"Tags: {', '.join(a.tags)}",
            ])
            for a in analyses
        ]
        template = TREND_REPORT_PROMPTS.get(self.language, TREND_REPORT_PROMPTS["en"])
        prompt = template.format(analyses="\n\n".join(blocks))

        try:
            report = await self._complete(prompt)
        except UpstreamModelError as e:
            logger.error("Trend report generation failed | error=%s", e)
            return fallback_trend_report(analyses)

        if not report.strip() or is_upstream_error(report):
            logger.warning("Trend report empty or errored, using fallback")
            return fallback_trend_report(analyses)
        return report.strip()


# === Helpers over collections of analyses ===

@dataclass
class AnalysisStats:
    """Tag statistics over a set of analyses."""

    total_items: int = 0
    total_tags: int = 0
    top_tags: list[tuple[str, int]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_items": self.total_items,
            "total_tags": self.total_tags,
            "top_tags": [{"tag": tag, "count": count} for tag, count in self.top_tags],
        }


def analysis_stats(analyses: list[AnalysisResult], top: int = 10) -> AnalysisStats:
    counts = Counter(tag for a in analyses for tag in a.tags)
    return AnalysisStats(
        total_items=len(analyses),
        total_tags=len(counts),
        top_tags=counts.most_common(top),
    )


def filter_by_tags(analyses: list[AnalysisResult], tags: Iterable[str]) -> list[AnalysisResult]:
    """Analyses carrying at least one of the given tags."""
    wanted = set(tags)
    return [a for a in analyses if wanted.intersection(a.tags)]


def fallback_trend_report(analyses: list[AnalysisResult]) -> str:
    stats = analysis_stats(analyses)
    lines = [
        "# Trend Report",
        "",
        "## Overview",
        f"- **Items analyzed**: {stats.total_items}",
        f"- **Top tags**: {', '.join(tag for tag, _ in stats.top_tags) or 'none'}",
        "",
        "## Notes",
        "This report summarizes tags identified across analyzed Hacker News items.",
    ]
    return "\n".join(lines)


def export_to_json(analyses: list[AnalysisResult]) -> str:
    return json.dumps([a.to_json_dict() for a in analyses], indent=2, ensure_ascii=False)


def import_from_json(text: str) -> list[AnalysisResult]:
    """Load analyses exported by export_to_json.

    Invalid JSON or a non-list document yields an empty list; individual
    entries that fail validation are skipped.
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        logger.error("Analysis import failed | error=%s", e)
        return []
    if not isinstance(data, list):
        logger.error("Analysis import failed | error=expected a JSON array")
        return []

    results = []
    for index, entry in enumerate(data):
        try:
            results.append(AnalysisResult.model_validate(entry))
        except ValidationError as e:
            logger.warning("Skipping invalid analysis | index=%d errors=%d", index, e.error_count())
    return results
