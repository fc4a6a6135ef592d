import asyncio
import json
from datetime import date

import pytest

from ccat_practice.cache import (
    CACHE_VERSION, QuestionPoolLoader, cache_key, get_cached_pool, put_cached_pool,
)
from ccat_practice.db import store_get, store_set
from ccat_practice.generator import ContentGenerationError, parse_questions
from ccat_practice.models import Category, Difficulty

from conftest import FakeGenerator

TODAY = date(2024, 3, 1)
TOMORROW = date(2024, 3, 2)


def test_cache_key_includes_version():
    assert cache_key(3, Difficulty.MEDIUM) == f"question_cache-{CACHE_VERSION}-3-medium"


def test_put_then_get_same_day(db, pool):
    put_cached_pool(db, 3, Difficulty.EASY, pool, today=TODAY)
    assert get_cached_pool(db, 3, Difficulty.EASY, today=TODAY) == pool


def test_get_next_day_is_miss(db, pool):
    put_cached_pool(db, 3, Difficulty.EASY, pool, today=TODAY)
    assert get_cached_pool(db, 3, Difficulty.EASY, today=TOMORROW) is None


def test_get_absent_is_miss(db):
    assert get_cached_pool(db, 3, Difficulty.EASY, today=TODAY) is None


def test_keys_are_separate_per_grade_and_difficulty(db, pool):
    put_cached_pool(db, 3, Difficulty.EASY, pool, today=TODAY)
    assert get_cached_pool(db, 4, Difficulty.EASY, today=TODAY) is None
    assert get_cached_pool(db, 3, Difficulty.HARD, today=TODAY) is None


def test_entry_is_stamped_with_date(db, pool):
    put_cached_pool(db, 3, Difficulty.EASY, pool, today=TODAY)
    entry = json.loads(store_get(db, cache_key(3, Difficulty.EASY)))
    assert entry["date"] == "2024-03-01"
    assert set(entry["questions"]) == {"verbal", "quantitative", "non-verbal"}


def test_malformed_json_is_miss(db):
    store_set(db, cache_key(3, Difficulty.EASY), "{not json")
    assert get_cached_pool(db, 3, Difficulty.EASY, today=TODAY) is None


def test_malformed_questions_is_miss(db):
    entry = {"date": "2024-03-01", "questions": {"verbal": [{"question": "no options"}]}}
    store_set(db, cache_key(3, Difficulty.EASY), json.dumps(entry))
    assert get_cached_pool(db, 3, Difficulty.EASY, today=TODAY) is None


def test_non_object_entry_is_miss(db):
    store_set(db, cache_key(3, Difficulty.EASY), "[1, 2, 3]")
    assert get_cached_pool(db, 3, Difficulty.EASY, today=TODAY) is None


@pytest.mark.asyncio
async def test_loader_fetches_and_caches_on_miss(db, fake_generator):
    loader = QuestionPoolLoader(db, fake_generator, today=TODAY)
    pool = await loader.load(3, Difficulty.MEDIUM)
    assert len(pool[Category.VERBAL]) == 6
    assert len(fake_generator.calls) == 3
    assert get_cached_pool(db, 3, Difficulty.MEDIUM, today=TODAY) == pool


@pytest.mark.asyncio
async def test_loader_uses_cache_on_hit(db, pool, fake_generator):
    put_cached_pool(db, 3, Difficulty.EASY, pool, today=TODAY)
    loader = QuestionPoolLoader(db, fake_generator, today=TODAY)
    assert await loader.load(3, Difficulty.EASY) == pool
    assert fake_generator.calls == []


@pytest.mark.asyncio
async def test_loader_refetches_stale_entry(db, pool, fake_generator):
    put_cached_pool(db, 3, Difficulty.EASY, pool, today=TODAY)
    loader = QuestionPoolLoader(db, fake_generator, today=TOMORROW)
    fresh = await loader.load(3, Difficulty.EASY)
    assert fresh != pool
    assert len(fake_generator.calls) == 3


@pytest.mark.asyncio
async def test_loader_shares_in_flight_fetch(db, gated_generator):
    """Two loads for the same key while a fetch is pending make one fetch."""
    loader = QuestionPoolLoader(db, gated_generator, today=TODAY)
    first = asyncio.ensure_future(loader.load(3, Difficulty.EASY))
    second = asyncio.ensure_future(loader.load(3, Difficulty.EASY))
    await asyncio.sleep(0)
    assert loader.is_loading(3, Difficulty.EASY)
    gated_generator.gate.set()
    a, b = await asyncio.gather(first, second)
    assert a == b
    assert len(gated_generator.calls) == 3
    assert not loader.is_loading(3, Difficulty.EASY)


@pytest.mark.asyncio
async def test_loader_discards_abandoned_fetch(db, gated_generator):
    loader = QuestionPoolLoader(db, gated_generator, today=TODAY)
    pending = asyncio.ensure_future(loader.load(3, Difficulty.EASY))
    await asyncio.sleep(0)
    assert loader.abandon(3, Difficulty.EASY) is True
    assert not loader.is_loading(3, Difficulty.EASY)
    gated_generator.gate.set()
    assert await pending is None
    assert get_cached_pool(db, 3, Difficulty.EASY, today=TODAY) is None


def test_abandon_without_fetch(db, fake_generator):
    loader = QuestionPoolLoader(db, fake_generator, today=TODAY)
    assert loader.abandon(3, Difficulty.EASY) is False


@pytest.mark.asyncio
async def test_loader_failure_leaves_old_entry_untouched(db, pool):
    """A failed fetch caches nothing and keeps yesterday's entry as it was."""
    put_cached_pool(db, 3, Difficulty.EASY, pool, today=TODAY)
    before = store_get(db, cache_key(3, Difficulty.EASY))
    loader = QuestionPoolLoader(db, FakeGenerator(fail={Category.QUANTITATIVE}), today=TOMORROW)
    with pytest.raises(ContentGenerationError, match="quantitative"):
        await loader.load(3, Difficulty.EASY)
    assert store_get(db, cache_key(3, Difficulty.EASY)) == before
    assert not loader.is_loading(3, Difficulty.EASY)


class UnusableVerbalGenerator(FakeGenerator):
    """Returns a verbal batch in which every item fails validation."""

    async def generate_questions(self, category, difficulty, grade):
        if category is Category.VERBAL:
            self.calls.append((category, difficulty, grade))
            return parse_questions([{
                "question": "Pick the odd one out",
                "options": ["cat", "Cat", "dog", "cow"],
                "correct_index": 2,
                "explanation": "A dog barks.",
                "sub_category": "classification",
            }])
        return await super().generate_questions(category, difficulty, grade)


@pytest.mark.asyncio
async def test_loader_rejects_category_without_usable_questions(db):
    loader = QuestionPoolLoader(db, UnusableVerbalGenerator(), today=TODAY)
    with pytest.raises(ContentGenerationError, match="categories: verbal."):
        await loader.load(3, Difficulty.EASY)
    assert get_cached_pool(db, 3, Difficulty.EASY, today=TODAY) is None
    assert store_get(db, cache_key(3, Difficulty.EASY)) is None
