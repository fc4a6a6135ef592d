"""Daily question cache and the async loader that fills it."""
import asyncio
import json
import logging
from datetime import date
from typing import Optional

from ccat_practice.dates import today_iso
from ccat_practice.db import store_get, store_set
from ccat_practice.generator import ContentGenerator, fetch_question_pool
from ccat_practice.models import Category, Difficulty, Question

logger = logging.getLogger(__name__)

# Bump when the stored question shape changes; older entries are then never read.
CACHE_VERSION = "v4"


def cache_key(grade: int, difficulty: Difficulty) -> str:
    return f"question_cache-{CACHE_VERSION}-{grade}-{difficulty.value}"


def pool_to_dict(pool: dict) -> dict:
    return {
        category.value: [q.to_dict() for q in pool.get(category, [])]
        for category in Category
    }


def pool_from_dict(data) -> dict:
    """Rebuild a pool from its JSON shape. Raises ValueError if malformed."""
    if not isinstance(data, dict):
        raise ValueError("questions must be an object")
    pool = {}
    for category in Category:
        items = data.get(category.value, [])
        if not isinstance(items, list):
            raise ValueError(f"{category.value} questions must be a list")
        pool[category] = [Question.from_dict(item) for item in items]
    return pool


def get_cached_pool(
    db_path: str, grade: int, difficulty: Difficulty, today: Optional[date] = None
) -> dict | None:
    """Return today's cached pool, or None when absent, stale or malformed."""
    key = cache_key(grade, difficulty)
    raw = store_get(db_path, key)
    if raw is None:
        logger.debug("Question cache miss (%s): no entry", key)
        return None
    try:
        entry = json.loads(raw)
        if not isinstance(entry, dict):
            raise ValueError("cache entry must be an object")
        if entry.get("date") != today_iso(today):
            logger.debug("Question cache miss (%s): stale entry from %s", key, entry.get("date"))
            return None
        pool = pool_from_dict(entry.get("questions"))
    except ValueError as exc:
        logger.warning("Ignoring malformed question cache %s: %s", key, exc)
        return None
    logger.debug("Question cache hit (%s)", key)
    return pool


def put_cached_pool(
    db_path: str, grade: int, difficulty: Difficulty, pool: dict, today: Optional[date] = None
) -> None:
    entry = {"date": today_iso(today), "questions": pool_to_dict(pool)}
    store_set(db_path, cache_key(grade, difficulty), json.dumps(entry))


class QuestionPoolLoader:
    """Serves today's pool from the cache and fetches it on a miss.

    At most one fetch per (grade, difficulty) is in flight; concurrent callers
    await the same task. A fetch dropped with :meth:`abandon` runs to the end
    but its result is neither cached nor returned.
    """

    def __init__(self, db_path: str, generator: ContentGenerator, today: Optional[date] = None):
        self.db_path = db_path
        self.generator = generator
        self.today = today
        self._pending = {}
        self._abandoned = set()

    def is_loading(self, grade: int, difficulty: Difficulty) -> bool:
        return (grade, difficulty) in self._pending

    async def load(self, grade: int, difficulty: Difficulty) -> dict | None:
        """Return the pool for today.

        Returns None if the fetch was abandoned while this call waited.

        Raises:
            ContentGenerationError: if the generator fails. Nothing is cached.
        """
        pool = get_cached_pool(self.db_path, grade, difficulty, self.today)
        if pool is not None:
            return pool
        key = (grade, difficulty)
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(grade, difficulty))
            self._pending[key] = task
            task.add_done_callback(lambda t: self._finish(key, t))
        else:
            logger.debug("Joining in-flight fetch for grade %d, %s", grade, difficulty.value)
        return await asyncio.shield(task)

    def abandon(self, grade: int, difficulty: Difficulty) -> bool:
        """Stop waiting for an in-flight fetch. Returns False if none was pending."""
        task = self._pending.pop((grade, difficulty), None)
        if task is None:
            return False
        self._abandoned.add(task)
        logger.info("Abandoned question fetch for grade %d, %s", grade, difficulty.value)
        return True

    async def _fetch(self, grade: int, difficulty: Difficulty) -> dict | None:
        pool = await fetch_question_pool(self.generator, difficulty, grade)
        if asyncio.current_task() in self._abandoned:
            logger.info("Discarding late result of abandoned fetch (grade %d, %s)", grade, difficulty.value)
            return None
        put_cached_pool(self.db_path, grade, difficulty, pool, self.today)
        return pool

    def _finish(self, key: tuple, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        self._abandoned.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Question fetch for %s ended with %r", key, task.exception())
