"""Persistence for analyses and briefs.

Layout:
    DATA_DIR/analysis-<itemID>.json   One analysis per item
    POSTS_DIR/<briefID>.json          Brief (read by the web layer)
    POSTS_DIR/<briefID>.md            Human-readable twin

Briefs are never overwritten: save_brief refuses an ID that already exists.
The markdown twin is written before the JSON file, so any brief listed by
its JSON file also has its markdown.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from briefs import render_brief_markdown
from errors import StorageError
from models.analysis import AnalysisResult
from models.brief import Brief, BriefMetadata
from storage.files import read_json, write_json_atomic, write_text_atomic

logger = logging.getLogger(__name__)


class BriefStore:
    """File-backed store for analyses and briefs.

    Example:
        >>> store = BriefStore(Path("data"), Path("posts"))
        >>> store.save_brief(brief)
        >>> [b.id for b in store.search_briefs("rust")]
    """

    def __init__(self, data_dir: Path | str, posts_dir: Path | str):
        self.data_dir = Path(data_dir)
        self.posts_dir = Path(posts_dir)

    def initialize(self) -> None:
        """Create the data and posts directories.

        Raises:
            StorageError: If either directory cannot be created
        """
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self.posts_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create storage directories: {e}") from e

    # === Analyses ===

    def _analysis_path(self, item_id: int) -> Path:
        return self.data_dir / f"{AnalysisResult.make_id(item_id)}.json"

    def has_analysis(self, item_id: int) -> bool:
        return self._analysis_path(item_id).is_file()

    def save_analysis(self, item_id: int, analysis: AnalysisResult) -> None:
        write_json_atomic(self._analysis_path(item_id), analysis.to_json_dict())
        logger.debug("Analysis saved | id=%s", analysis.id)

    def load_analysis(self, item_id: int) -> AnalysisResult | None:
        data = read_json(self._analysis_path(item_id))
        if data is None:
            return None
        try:
            return AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Invalid analysis file for item {item_id}: {e}") from e

    # === Briefs ===

    def _brief_path(self, brief_id: str, suffix: str = ".json") -> Path:
        return self.posts_dir / f"{brief_id}{suffix}"

    def save_brief(self, brief: Brief) -> Path:
        """Persist a brief as JSON plus its markdown twin.

        Returns:
            Path of the JSON file

        Raises:
            StorageError: If the brief ID already exists or writing fails
        """
        json_path = self._brief_path(brief.id)
        if json_path.exists():
            raise StorageError(f"Brief {brief.id} already exists")

        write_text_atomic(self._brief_path(brief.id, ".md"), render_brief_markdown(brief))
        write_json_atomic(json_path, brief.to_json_dict())
        logger.info("Brief saved | id=%s title=%s", brief.id, brief.title[:60])
        return json_path

    def has_brief_for(self, item_id: int) -> bool:
        """True if any brief JSON exists for the item."""
        return any(self.posts_dir.glob(f"brief-{item_id}-*.json"))

    def load_brief(self, brief_id: str) -> Brief | None:
        data = read_json(self._brief_path(brief_id))
        if data is None:
            return None
        try:
            return Brief.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Invalid brief file {brief_id}: {e}") from e

    def load_all_briefs(self) -> list[Brief]:
        """Load every readable brief, newest first.

        Unreadable brief files are logged and skipped so one bad file does
        not hide the rest of the archive.
        """
        if not self.posts_dir.is_dir():
            return []

        briefs = []
        for path in self.posts_dir.glob("*.json"):
            try:
                brief = self.load_brief(path.stem)
            except StorageError as e:
                logger.warning("Skipping unreadable brief | file=%s error=%s", path.name, e)
                continue
            if brief:
                briefs.append(brief)

        briefs.sort(key=lambda b: b.created_at, reverse=True)
        return briefs

    def brief_metadata(self) -> list[BriefMetadata]:
        """Listing view of all briefs, newest first."""
        return [brief.metadata() for brief in self.load_all_briefs()]

    def search_briefs(self, keyword: str) -> list[Brief]:
        """Case-insensitive match on title, summary, content, or any tag."""
        needle = keyword.lower()
        return [
            brief
            for brief in self.load_all_briefs()
            if needle in brief.title.lower()
            or needle in brief.summary.lower()
            or needle in brief.content.lower()
            or any(needle in tag.lower() for tag in brief.tags)
        ]

    def briefs_by_tag(self, tag: str) -> list[Brief]:
        """Briefs carrying exactly this tag."""
        return [brief for brief in self.load_all_briefs() if tag in brief.tags]
