"""Async Hacker News API client.

Thin wrapper over the public Firebase API:
    GET item/{id}.json      Single item (null if it does not exist)
    GET maxitem.json        Largest item ID assigned so far
    GET newstories.json     Up to 500 newest story IDs, newest first
    GET topstories.json     Front page ranking
    GET beststories.json    Best stories ranking
    GET askstories.json     Ask HN
    GET showstories.json    Show HN
    GET jobstories.json     Job postings
    GET user/{id}.json      User profile
    GET updates.json        Recently changed items and profiles

Error Handling Strategy:
    - Every call returns a neutral value (None, 0, []) on failure
    - HTTP, network, timeout and decode errors are logged, never raised
    - The pipeline decides what a missing result means for an item
"""

import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi
from pydantic import ValidationError

from config import HN_API_BASE_URL
from models.item import Item, Updates, User

logger = logging.getLogger(__name__)

USER_AGENT = "hn-brief/0.1 (+https://news.ycombinator.com)"


def _ssl_context() -> ssl.SSLContext:
    """SSL context verifying against the certifi bundle."""
    return ssl.create_default_context(cafile=certifi.where())


class HNClient:
    """Hacker News API client sharing one connection pool.

    Use as an async context manager so the session is always closed:

        >>> async with HNClient() as client:
        ...     ids = await client.get_new_story_ids()
        ...     item = await client.get_item(ids[0])
    """

    def __init__(
        self,
        base_url: str = HN_API_BASE_URL,
        timeout: float = 30,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "HNClient":
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=10, ssl=_ssl_context())
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": USER_AGENT},
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def _get_json(self, path: str) -> Any | None:
        """GET {base_url}/{path} and decode JSON, or None on any failure."""
        if self._session is None:
            raise RuntimeError("HNClient used outside of 'async with'")

        url = f"{self.base_url}/{path}"
        try:
            async with self._session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status != 200:
                    logger.warning("HN API error | url=%s status=%d", url, resp.status)
                    return None
                return await resp.json(content_type=None)
        except asyncio.TimeoutError:
            logger.warning("HN API timeout | url=%s timeout=%ss", url, self.timeout)
            return None
        except (aiohttp.ClientError, ValueError) as e:
            logger.warning("HN API request failed | url=%s error=%s: %s", url, type(e).__name__, e)
            return None

    async def _get_id_list(self, path: str) -> list[int]:
        data = await self._get_json(path)
        if not isinstance(data, list):
            if data is not None:
                logger.warning("HN API returned non-list | path=%s", path)
            return []
        return [int(x) for x in data if isinstance(x, int)]

    async def get_item(self, item_id: int) -> Item | None:
        """Fetch one item; None if missing, unreachable or malformed."""
        data = await self._get_json(f"item/{item_id}.json")
        if data is None:
            logger.debug("Item not available | id=%d", item_id)
            return None
        try:
            return Item.model_validate(data)
        except ValidationError as e:
            logger.warning("Malformed item from HN API | id=%d error=%s", item_id, e)
            return None

    async def get_max_item_id(self) -> int:
        """Largest assigned item ID, or 0 on failure."""
        data = await self._get_json("maxitem.json")
        if isinstance(data, int):
            return data
        if data is not None:
            logger.warning("Unexpected maxitem payload | value=%r", data)
        return 0

    async def get_new_story_ids(self) -> list[int]:
        """Newest story IDs, newest first."""
        return await self._get_id_list("newstories.json")

    async def get_top_story_ids(self) -> list[int]:
        return await self._get_id_list("topstories.json")

    async def get_best_story_ids(self) -> list[int]:
        return await self._get_id_list("beststories.json")

    async def get_ask_story_ids(self) -> list[int]:
        return await self._get_id_list("askstories.json")

    async def get_show_story_ids(self) -> list[int]:
        return await self._get_id_list("showstories.json")

    async def get_job_story_ids(self) -> list[int]:
        return await self._get_id_list("jobstories.json")

    async def get_user(self, username: str) -> User | None:
        """Fetch a user profile; None if missing, unreachable or malformed."""
        data = await self._get_json(f"user/{username}.json")
        if data is None:
            return None
        try:
            return User.model_validate(data)
        except ValidationError as e:
            logger.warning("Malformed user from HN API | id=%s error=%s", username, e)
            return None

    async def get_updates(self) -> Updates:
        """Recently changed item IDs and usernames; empty lists on failure."""
        data = await self._get_json("updates.json")
        if data is None:
            return Updates()
        try:
            return Updates.model_validate(data)
        except ValidationError as e:
            logger.warning("Malformed updates payload | error=%s", e)
            return Updates()
