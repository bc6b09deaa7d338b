"""Brief models: the persisted, externally visible artifact."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from models.analysis import AnalysisResult


class Brief(BaseModel):
    """A brief combining one item with its analysis.

    Briefs are written once and never updated in place. The ID embeds the
    creation instant, so rebuilding a brief for the same item yields a new
    brief rather than overwriting the old one.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="brief-<itemID>-<epochMillis>")
    item_id: int = Field(alias="itemId", description="Source item ID")
    title: str = Field(description="Item title or placeholder")
    content: str = Field(description="Rendered markdown content")
    summary: str = Field(description="Copied from the analysis")
    analysis: AnalysisResult = Field(description="Full analysis the brief was built from")
    tags: list[str] = Field(default_factory=list, description="Copied from the analysis")
    created_at: datetime = Field(alias="createdAt", description="Creation instant (UTC)")

    @property
    def is_sentinel(self) -> bool:
        """True when built from a failure-tagged analysis."""
        return self.analysis.is_sentinel

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    def metadata(self) -> "BriefMetadata":
        return BriefMetadata(
            id=self.id,
            title=self.title,
            summary=self.summary,
            tags=list(self.tags),
            created_at=self.created_at,
        )


class BriefMetadata(BaseModel):
    """Listing view of a brief (no content or analysis)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    summary: str
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(alias="createdAt")
