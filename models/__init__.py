"""Pydantic models for the HN Brief pipeline.

Item:
    Hacker News item (story, comment, job, poll, pollopt) as cached from the API.

User / Updates:
    User profiles and the changed-items feed from the same API.

AnalysisPayload / AnalysisResult:
    Parsed model output and the analysis bound to an item, including
    failure-tagged sentinel analyses.

Brief / BriefMetadata:
    The persisted artifact and its listing view.

ProcessingRecord / ProcessingStats:
    Progress tracker log entries and the rolling statistics record.

Example:
    >>> from models import Item, AnalysisResult, AnalysisFailure
    >>> item = Item(id=1, title="Show HN: ...")
    >>> AnalysisResult.sentinel(item.id, item.display_title, AnalysisFailure.PARSE).tags
    ['error', 'analysis-failed']
"""

from models.item import Item, ItemType, Updates, User
from models.analysis import (
    AnalysisFailure,
    AnalysisPayload,
    AnalysisResult,
    SENTINEL_TAG,
)
from models.brief import Brief, BriefMetadata
from models.tracking import (
    ProcessingRecord,
    ProcessingStats,
    RecordStatus,
    RecordType,
)

__all__ = [
    "Item",
    "ItemType",
    "Updates",
    "User",
    "AnalysisFailure",
    "AnalysisPayload",
    "AnalysisResult",
    "SENTINEL_TAG",
    "Brief",
    "BriefMetadata",
    "ProcessingRecord",
    "ProcessingStats",
    "RecordStatus",
    "RecordType",
]
