"""Analysis models for analyzed Hacker News items.

Model Hierarchy:
    AnalysisPayload: The five content fields parsed out of a model reply.
        Validation here is the structural check every parse strategy must
        pass (summary is a string, the four list fields are lists).
    AnalysisResult: A payload bound to an item, with ID, title and
        generation time. This is what gets persisted as analysis-<id>.json.

Sentinel analyses:
    When a real analysis cannot be produced, the analyzer substitutes a
    well-formed AnalysisResult whose tags carry SENTINEL_TAG. Every content
    field is populated, so consumers never special-case "analysis failed"
    separately from "no content"; trend aggregation filters on the tag.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

SENTINEL_TAG = "analysis-failed"
ERROR_TAG = "error"
LIMITED_INFO_TAG = "limited-info"

LIST_FIELDS = ("key_points", "technical_insights", "trends", "tags")


class AnalysisFailure(str, Enum):
    """Why a sentinel analysis was substituted."""

    UPSTREAM = "upstream"          # Model service reported an error
    LIMITED_INFO = "limited_info"  # Model could not fetch the linked URL
    PARSE = "parse"                # Reply unparsable after the full cascade


_SENTINEL_SUMMARIES = {
    AnalysisFailure.UPSTREAM: "Analysis process error; full analysis unavailable",
    AnalysisFailure.LIMITED_INFO: "Analysis based on limited information; source content could not be retrieved",
    AnalysisFailure.PARSE: "Response format error; full analysis unavailable",
}


def _to_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        raise ValueError(f"expected a list, got {type(value).__name__}")
    return [item if isinstance(item, str) else str(item) for item in value if item is not None]


class AnalysisPayload(BaseModel):
    """The five content fields of an analysis.

    Accepts both the camelCase keys the model is asked to emit and the
    snake_case attribute names. Non-string list elements are coerced to
    strings; a list field that is not a list fails validation.
    """

    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(description="Free-text summary")
    key_points: list[str] = Field(alias="keyPoints", description="Key technical points")
    technical_insights: list[str] = Field(alias="technicalInsights", description="Technical insights")
    trends: list[str] = Field(description="Identified industry trends")
    tags: list[str] = Field(description="Classification tags")

    @field_validator("summary", mode="before")
    @classmethod
    def _summary_is_string(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError(f"summary must be a string, got {type(value).__name__}")
        return value

    @field_validator(*LIST_FIELDS, mode="before")
    @classmethod
    def _list_of_strings(cls, value: Any) -> list[str]:
        return _to_str_list(value)


class AnalysisResult(AnalysisPayload):
    """Analysis of one Hacker News item.

    Attributes:
        id: 'analysis-<itemID>'
        title: Item title echoed back (or generated placeholder)
        generated_at: When the analysis was produced (UTC)
        failure: Set only on sentinel results

    Example:
        >>> result = AnalysisResult.sentinel(42, "Title", AnalysisFailure.PARSE)
        >>> result.is_sentinel
        True
    """

    id: str = Field(description="analysis-<itemID>")
    title: str = Field(description="Echoed item title")
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="generatedAt",
    )
    failure: AnalysisFailure | None = Field(default=None, description="Sentinel reason")

    @staticmethod
    def make_id(item_id: int) -> str:
        return f"analysis-{item_id}"

    @classmethod
    def from_payload(cls, item_id: int, title: str, payload: AnalysisPayload) -> "AnalysisResult":
        """Bind parsed content fields to an item."""
        return cls(
            id=cls.make_id(item_id),
            title=title,
            summary=payload.summary,
            key_points=list(payload.key_points),
            technical_insights=list(payload.technical_insights),
            trends=list(payload.trends),
            tags=list(payload.tags),
        )

    @classmethod
    def sentinel(
        cls,
        item_id: int,
        title: str,
        failure: AnalysisFailure,
    ) -> "AnalysisResult":
        """Create a failure-tagged analysis with every field populated."""
        if failure is AnalysisFailure.LIMITED_INFO:
            key_points = ["Source content could not be retrieved"]
            tags = [LIMITED_INFO_TAG, SENTINEL_TAG]
        else:
            key_points = ["Analysis failed"]
            tags = [ERROR_TAG, SENTINEL_TAG]
        return cls(
            id=cls.make_id(item_id),
            title=title,
            summary=_SENTINEL_SUMMARIES[failure],
            key_points=key_points,
            technical_insights=["Technical analysis could not be completed"],
            trends=["Trends could not be identified"],
            tags=tags,
            failure=failure,
        )

    @property
    def is_sentinel(self) -> bool:
        """True for substituted failure analyses."""
        return SENTINEL_TAG in self.tags

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys of the persisted layout."""
        return self.model_dump(mode="json", by_alias=True)

    def __str__(self) -> str:
        """Human-readable representation for logging."""
        summary_preview = self.summary[:50] + "..." if len(self.summary) > 50 else self.summary
        return f"AnalysisResult({self.id}, '{summary_preview}')"
