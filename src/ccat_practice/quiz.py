"""Question selection for practice quizzes, the daily puzzle and smart practice."""
import logging
import random
from datetime import date
from typing import Optional

from ccat_practice.dates import day_of_year
from ccat_practice.models import Category, Question
from ccat_practice.review import get_weak_skills

logger = logging.getLogger(__name__)

QUESTIONS_PER_QUIZ = 5
WEAK_QUESTION_LIMIT = 3


def shuffle(items, rng: Optional[random.Random] = None) -> list:
    """Return a uniformly shuffled copy of ``items`` (Fisher-Yates).

    Pass a seeded ``random.Random`` to get a reproducible order.
    """
    rng = rng or random
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def combined_pool(pool: Optional[dict]) -> list[Question]:
    """All questions in fixed category order: verbal, quantitative, non-verbal."""
    if not pool:
        return []
    return [q for category in Category for q in pool.get(category, [])]


def build_category_quiz(
    pool: Optional[dict],
    category: Category,
    count: int = QUESTIONS_PER_QUIZ,
    rng: Optional[random.Random] = None,
) -> list[Question]:
    if not pool:
        return []
    return shuffle(pool.get(category, []), rng)[:count]


def build_daily_puzzle(pool: Optional[dict], today: Optional[date] = None) -> list[Question]:
    """The same single question for everyone sharing a pool on a given day."""
    questions = combined_pool(pool)
    if not questions:
        return []
    return [questions[day_of_year(today) % len(questions)]]


def _take_unique(candidates: list[Question], chosen: list[Question], limit: int) -> list[Question]:
    taken = []
    seen = {q.text for q in chosen}
    for question in candidates:
        if len(taken) >= limit:
            break
        if question.text in seen:
            continue
        seen.add(question.text)
        taken.append(question)
    return taken


def build_smart_practice(
    pool: Optional[dict],
    performance: dict,
    count: int = QUESTIONS_PER_QUIZ,
    rng: Optional[random.Random] = None,
) -> list[Question]:
    """Bias a quiz towards the player's weakest skills.

    Up to three questions come from the three lowest-accuracy skills, the
    rest are random. If that still leaves the quiz short, the partial pick is
    dropped and the whole quiz is drawn at random instead.
    """
    questions = combined_pool(pool)
    if not questions:
        return []

    weak_skills = get_weak_skills(performance)
    chosen = []
    if weak_skills:
        weak = [q for q in questions if q.sub_category in weak_skills]
        chosen.extend(_take_unique(shuffle(weak, rng), chosen, WEAK_QUESTION_LIMIT))
    chosen.extend(_take_unique(shuffle(questions, rng), chosen, count - len(chosen)))

    if len(chosen) < count:
        logger.debug("Smart practice short of %d questions; falling back to random", count)
        chosen = _take_unique(shuffle(questions, rng), [], count)

    logger.debug("Smart practice: weak skills %s", weak_skills)
    return shuffle(chosen, rng)
