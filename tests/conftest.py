"""Shared fixtures: temporary storage, scripted model service, fake HN source."""

import json
from pathlib import Path

import pytest

from agents.analyzer import AnalyzerAgent
from config import Config
from models.item import Item
from storage.brief_store import BriefStore
from storage.cache import RawCache
from storage.tracker import ProgressTracker


def analysis_reply(
    summary: str = "A new Rust web framework",
    tags: list[str] | None = None,
) -> str:
    return json.dumps({
        "summary": summary,
        "keyPoints": ["Async runtime", "Zero-copy parsing"],
        "technicalInsights": ["Lower tail latency"],
        "trends": ["Rust on the server"],
        "tags": tags if tags is not None else ["rust", "web"],
    })


def make_item(item_id: int, **fields) -> Item:
    data = {
        "id": item_id,
        "type": "story",
        "by": "pg",
        "time": 1_700_000_000,
        "title": f"Story {item_id}",
        "url": f"https://example.com/{item_id}",
    }
    data.update(fields)
    return Item.model_validate(data)


class FakeModelService:
    """Scripted ModelService.

    Replies are chosen by the first key that appears in the prompt;
    an Exception value is raised instead of returned.
    """

    def __init__(self, replies: dict[str, object] | None = None, default: object = None):
        self.replies = replies or {}
        self.default = analysis_reply() if default is None else default
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.default
        for key, value in self.replies.items():
            if key in prompt:
                reply = value
                break
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeHNClient:
    """In-memory stand-in for HNClient."""

    def __init__(
        self,
        items: dict[int, Item] | None = None,
        new_ids: list[int] | None = None,
        max_id: int | None = None,
    ):
        self.items = items or {}
        self.new_ids = new_ids if new_ids is not None else sorted(self.items, reverse=True)
        self.max_id = max_id if max_id is not None else max(self.new_ids, default=0)
        self.fetched: list[int] = []

    async def get_item(self, item_id: int) -> Item | None:
        self.fetched.append(item_id)
        return self.items.get(item_id)

    async def get_max_item_id(self) -> int:
        return self.max_id

    async def get_new_story_ids(self) -> list[int]:
        return list(self.new_ids)


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        anthropic_api_key="test-key",
        data_dir=tmp_path / "data",
        posts_dir=tmp_path / "posts",
        log_dir=tmp_path / "log",
        batch_size=2,
        batch_delay_seconds=0,
        poll_interval_seconds=3600,
    )


@pytest.fixture
def tracker(config: Config) -> ProgressTracker:
    tracker = ProgressTracker(config.tracker_dir)
    tracker.initialize()
    return tracker


@pytest.fixture
def cache(config: Config) -> RawCache:
    cache = RawCache(config.data_dir)
    cache.initialize()
    return cache


@pytest.fixture
def store(config: Config) -> BriefStore:
    store = BriefStore(config.data_dir, config.posts_dir)
    store.initialize()
    return store


@pytest.fixture
def model_service() -> FakeModelService:
    return FakeModelService()


@pytest.fixture
def analyzer(config: Config, model_service: FakeModelService) -> AnalyzerAgent:
    return AnalyzerAgent(config, model_service=model_service)
