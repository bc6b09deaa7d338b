"""Content-addressed raw item cache.

Items are stored verbatim as DATA_DIR/story-<id>.json, keyed by their
Hacker News ID. The cache sits in front of the HN client: the pipeline
loads from here first and only hits the API on a miss.

A miss is a normal outcome and returns None. Unreadable cache files are
logged and treated as misses so a corrupt entry gets re-fetched and
overwritten instead of stalling the item forever.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from errors import StorageError
from models.item import Item
from storage.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)

_CACHE_FILE_PATTERN = re.compile(r"^story-(\d+)\.json$")


@dataclass
class CacheStats:
    """Summary of the raw item cache."""

    count: int = 0
    min_id: int | None = None
    max_id: int | None = None
    total_bytes: int = 0

    @property
    def total_mb(self) -> float:
        return self.total_bytes / (1024 * 1024)


class RawCache:
    """Read-through cache of raw Hacker News items.

    Example:
        >>> cache = RawCache(Path("data"))
        >>> cache.save(item)
        >>> cache.load(item.id) == item
        True
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)

    def initialize(self) -> None:
        """Create the cache directory.

        Raises:
            StorageError: If the directory cannot be created
        """
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create cache directory {self.data_dir}: {e}") from e

    def _path(self, item_id: int) -> Path:
        return self.data_dir / f"story-{item_id}.json"

    def has(self, item_id: int) -> bool:
        return self._path(item_id).is_file()

    def load(self, item_id: int) -> Item | None:
        """Load a cached item, or None on a miss."""
        try:
            data = read_json(self._path(item_id))
        except StorageError as e:
            logger.warning("Cache entry unreadable, treating as miss | id=%d error=%s", item_id, e)
            return None
        if data is None:
            return None
        try:
            return Item.model_validate(data)
        except ValidationError as e:
            logger.warning("Cache entry invalid, treating as miss | id=%d error=%s", item_id, e)
            return None

    def save(self, item: Item) -> None:
        """Store an item, overwriting any existing entry for its ID.

        Raises:
            StorageError: If the file cannot be written
        """
        write_json_atomic(self._path(item.id), item.to_json_dict())
        logger.debug("Item cached | id=%d", item.id)

    def list_cached_ids(self) -> set[int]:
        if not self.data_dir.is_dir():
            return set()
        ids = set()
        for path in self.data_dir.iterdir():
            match = _CACHE_FILE_PATTERN.match(path.name)
            if match:
                ids.add(int(match.group(1)))
        return ids

    def stats(self) -> CacheStats:
        """Count, ID range, and total size of cached items."""
        ids = self.list_cached_ids()
        if not ids:
            return CacheStats()

        total_bytes = 0
        for item_id in ids:
            try:
                total_bytes += self._path(item_id).stat().st_size
            except OSError:
                # Removed between listing and stat
                continue

        return CacheStats(
            count=len(ids),
            min_id=min(ids),
            max_id=max(ids),
            total_bytes=total_bytes,
        )
