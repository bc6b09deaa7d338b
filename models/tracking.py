"""Processing record and statistics models for the progress tracker.

ProcessingRecord:
    One outcome event, appended to the record log and never mutated.
    Multiple records may reference the same item across runs.

ProcessingStats:
    The single rolling statistics record. Updated by the pipeline at the
    end of each run; never pruned.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class RecordType(str, Enum):
    SOURCE_ITEM = "source-item"
    ANALYSIS = "analysis"
    BRIEF = "brief"


class RecordStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


# Record types whose success marks an item as done
DONE_RECORD_TYPES = frozenset({RecordType.SOURCE_ITEM, RecordType.ANALYSIS})


class ProcessingRecord(BaseModel):
    """A single processing outcome.

    Attributes:
        id: Record ID, e.g. 'story-<itemID>' or 'analysis-<itemID>'
        type: Which stage the record describes
        item_id: Source item ID
        status: success, error, or skipped
        error_message: Reason for error/skip outcomes
        processed_at: When the outcome was recorded (UTC)
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    type: RecordType
    item_id: int = Field(alias="itemId")
    status: RecordStatus
    error_message: str | None = Field(default=None, alias="errorMessage")
    processed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="processedAt",
    )

    @classmethod
    def for_item(
        cls,
        item_id: int,
        status: RecordStatus,
        error_message: str | None = None,
    ) -> "ProcessingRecord":
        return cls(
            id=f"story-{item_id}",
            type=RecordType.SOURCE_ITEM,
            item_id=item_id,
            status=status,
            error_message=error_message,
        )

    @classmethod
    def for_analysis(
        cls,
        item_id: int,
        status: RecordStatus,
        error_message: str | None = None,
    ) -> "ProcessingRecord":
        return cls(
            id=f"analysis-{item_id}",
            type=RecordType.ANALYSIS,
            item_id=item_id,
            status=status,
            error_message=error_message,
        )

    @classmethod
    def for_brief(cls, item_id: int, brief_id: str) -> "ProcessingRecord":
        return cls(
            id=brief_id,
            type=RecordType.BRIEF,
            item_id=item_id,
            status=RecordStatus.SUCCESS,
        )

    @property
    def marks_done(self) -> bool:
        """True if this record passes the dedup gate for its item."""
        return self.status is RecordStatus.SUCCESS and self.type in DONE_RECORD_TYPES


class ProcessingStats(BaseModel):
    """Aggregate statistics across all runs.

    Counters are cumulative totals. The pipeline supplies already-incremented
    values; the tracker never increments them itself.
    """

    model_config = ConfigDict(populate_by_name=True)

    last_processed_at: datetime = Field(default=EPOCH, alias="lastProcessedAt")
    total_processed: int = Field(default=0, alias="totalProcessed")
    total_errors: int = Field(default=0, alias="totalErrors")
    total_skipped: int = Field(default=0, alias="totalSkipped")
    last_max_item_id: int = Field(default=0, alias="lastMaxItemId")
    last_new_stories_count: int = Field(default=0, alias="lastNewStoriesCount")
