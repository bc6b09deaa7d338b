"""Hacker News item and user models.

An Item is one unit of content from the Hacker News feed. Items are cached
verbatim as returned by the API, so field names follow the API's own JSON
(`by`, `time`, `kids`, ...) and unknown fields are preserved on round-trip.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ItemType(str, Enum):
    """Closed set of Hacker News item kinds."""

    STORY = "story"
    COMMENT = "comment"
    JOB = "job"
    POLL = "poll"
    POLL_OPTION = "pollopt"


class Item(BaseModel):
    """A Hacker News item.

    Attributes:
        id: Source-assigned numeric ID (monotonically increasing across the feed)
        type: Item kind (story, comment, job, poll, pollopt)
        by: Author username
        time: Creation time (Unix seconds)
        title: Headline (stories, jobs, polls)
        text: HTML body text (Ask HN, comments, jobs)
        url: External link
        deleted: Item was deleted
        dead: Item was flagged dead

    Example:
        >>> item = Item.model_validate({"id": 8863, "type": "story", "time": 1175714200})
        >>> item.display_title
        'HN Item 8863'
    """

    model_config = ConfigDict(extra="allow")

    id: int = Field(description="Source-assigned item ID")
    type: ItemType = Field(default=ItemType.STORY, description="Item kind")
    by: str | None = Field(default=None, description="Author username")
    time: int = Field(default=0, description="Creation time (Unix seconds)")
    title: str | None = Field(default=None, description="Headline")
    text: str | None = Field(default=None, description="HTML body text")
    url: str | None = Field(default=None, description="External URL")
    score: int | None = Field(default=None, description="Points")
    descendants: int | None = Field(default=None, description="Comment count")
    parent: int | None = Field(default=None, description="Parent item ID")
    kids: list[int] = Field(default_factory=list, description="Child comment IDs")
    deleted: bool = Field(default=False, description="Deleted flag")
    dead: bool = Field(default=False, description="Dead flag")

    @property
    def created_at(self) -> datetime:
        """Creation time as a UTC datetime."""
        return datetime.fromtimestamp(self.time, tz=timezone.utc)

    @property
    def display_title(self) -> str:
        """Title with a generated placeholder for untitled items."""
        return self.title or f"HN Item {self.id}"

    @property
    def is_available(self) -> bool:
        """False for deleted or dead items, which are never analyzed."""
        return not (self.deleted or self.dead)

    def to_json_dict(self) -> dict:
        """Serialize in the source's own JSON shape: only the fields it sent."""
        return self.model_dump(mode="json", exclude_unset=True, exclude_none=True)

    def __str__(self) -> str:
        """Human-readable representation for logging."""
        return f"Item({self.id}, {self.type.value}, '{self.display_title[:50]}')"


class User(BaseModel):
    """A Hacker News user profile (GET user/{id}.json)."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(description="Case-sensitive username")
    created: int = Field(default=0, description="Account creation time (Unix seconds)")
    karma: int = Field(default=0, description="Karma score")
    about: str | None = Field(default=None, description="Self-description (HTML)")
    submitted: list[int] = Field(default_factory=list, description="IDs of the user's items")


class Updates(BaseModel):
    """Recently changed items and profiles (GET updates.json)."""

    items: list[int] = Field(default_factory=list)
    profiles: list[str] = Field(default_factory=list)
