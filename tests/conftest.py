import asyncio

import pytest

from ccat_practice.db import init_db
from ccat_practice.generator import ContentGenerationError, ContentGenerator
from ccat_practice.models import Category, Question


def build_question(text, sub_category="analogy", correct_index=0, options=None):
    return Question(
        text=text,
        options=tuple(options or [f"{text} A", f"{text} B", f"{text} C", f"{text} D"]),
        correct_index=correct_index,
        explanation=f"Because of {text}.",
        sub_category=sub_category,
    )


class FakeGenerator(ContentGenerator):
    """Serves canned questions; can be told to fail or to wait on an event."""

    def __init__(self, per_category=6, fail=(), gate=None):
        self.per_category = per_category
        self.fail = set(fail)
        self.gate = gate
        self.calls = []

    async def generate_questions(self, category, difficulty, grade):
        self.calls.append((category, difficulty, grade))
        if self.gate is not None:
            await self.gate.wait()
        if category in self.fail:
            raise ContentGenerationError(f"Could not generate {category.value} questions.")
        return [
            build_question(f"{category.value} {difficulty.value} q{i}", sub_category=category.value)
            for i in range(self.per_category)
        ]

    async def generate_prompt(self, grade):
        return "What would a cloud taste like?"

    async def evaluate_open_answer(self, prompt, answer, grade):
        return "What a fun idea!"

    async def tutor_reply(self, question, user_answer, grade, history, message):
        return f"Hint {len(history) // 2 + 1}"

    async def summarize_progress(self, performance, grade):
        return "Keep going!"


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_practice.db")
    return db_path


@pytest.fixture
def db(tmp_db):
    """An initialized temporary database."""
    init_db(tmp_db)
    return tmp_db


@pytest.fixture
def make_question():
    return build_question


@pytest.fixture
def pool():
    """Three categories, four questions each, one skill per category."""
    return {
        Category.VERBAL: [build_question(f"verbal {i}", "analogy") for i in range(4)],
        Category.QUANTITATIVE: [build_question(f"quant {i}", "word problem") for i in range(4)],
        Category.NON_VERBAL: [build_question(f"shape {i}", "figure matrix") for i in range(4)],
    }


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def gated_generator():
    return FakeGenerator(gate=asyncio.Event())
