"""Brief assembly and markdown rendering.

build_brief() is pure and cannot fail: every optional item field has a
placeholder, so any item plus any analysis (including sentinels) yields a
well-formed Brief. The brief ID embeds the creation instant in epoch
milliseconds, so rebuilding a brief never collides with an earlier one.
"""

from datetime import datetime, timezone

from models.analysis import AnalysisResult
from models.brief import Brief
from models.item import Item


def _bullets(values: list[str]) -> list[str]:
    return [f"- {value}" for value in values]


def render_brief_content(item: Item, analysis: AnalysisResult) -> str:
    """Markdown body of a brief: item metadata, text, and the analysis."""
    lines = [
        f"# {item.display_title}",
        "",
        "**Source:** Hacker News",
        f"**Type:** {item.type.value}",
        f"**Author:** {item.by or 'Unknown'}",
        f"**Posted:** {item.created_at.isoformat()}",
    ]
    if item.url:
        lines.append(f"**URL:** {item.url}")

    lines.extend(["", "## Content", item.text or "No text content"])
    lines.extend(["", "## Analysis", analysis.summary])
    lines.extend(["", "### Key Points", *_bullets(analysis.key_points)])
    lines.extend(["", "### Technical Insights", *_bullets(analysis.technical_insights)])
    lines.extend(["", "### Trends Identified", *_bullets(analysis.trends)])
    return "\n".join(lines)


def build_brief(item: Item, analysis: AnalysisResult, now: datetime | None = None) -> Brief:
    """Combine an item and its analysis into a Brief.

    Args:
        item: Source item
        analysis: Analysis for the item (real or sentinel)
        now: Creation instant; defaults to the current UTC time

    Returns:
        Brief with ID 'brief-<itemID>-<epochMillis>'
    """
    created_at = now or datetime.now(timezone.utc)
    millis = int(created_at.timestamp() * 1000)
    return Brief(
        id=f"brief-{item.id}-{millis}",
        item_id=item.id,
        title=item.display_title,
        content=render_brief_content(item, analysis),
        summary=analysis.summary,
        analysis=analysis,
        tags=list(analysis.tags),
        created_at=created_at,
    )


def render_brief_markdown(brief: Brief) -> str:
    """Human-readable twin written next to the brief's JSON file."""
    lines = [
        brief.content,
        "",
        "## Summary",
        brief.summary,
        "",
        "## Key Points",
        *_bullets(brief.analysis.key_points),
        "",
        "## Technical Insights",
        *_bullets(brief.analysis.technical_insights),
        "",
        "## Tags",
        ", ".join(brief.tags),
        "",
        f"*Generated on: {brief.created_at.isoformat()}*",
    ]
    return "\n".join(lines)
