"""File-backed storage for the HN Brief pipeline.

RawCache:
    Verbatim source items, one JSON file per ID.

BriefStore:
    Analyses and briefs (JSON plus a markdown twin).

ProgressTracker:
    Append-only processing log and rolling statistics.
"""

from storage.cache import CacheStats, RawCache
from storage.brief_store import BriefStore
from storage.tracker import ProgressTracker

__all__ = [
    "CacheStats",
    "RawCache",
    "BriefStore",
    "ProgressTracker",
]
