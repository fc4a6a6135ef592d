"""Weak skill identification for smart practice."""

MIN_ATTEMPTS = 3
WEAK_SKILL_LIMIT = 3


def get_skill_accuracy(performance: dict, min_attempts: int = MIN_ATTEMPTS) -> list[dict]:
    """Accuracy per skill tag with at least ``min_attempts`` answers, weakest first.

    Ties keep the order in which the skills were first recorded.
    """
    rows = [
        {
            "skill": skill,
            "correct": stats.correct,
            "total": stats.total,
            "accuracy": stats.correct / stats.total,
        }
        for skill, stats in performance.items()
        if stats.total >= min_attempts
    ]
    rows.sort(key=lambda row: row["accuracy"])
    return rows


def get_weak_skills(
    performance: dict, min_attempts: int = MIN_ATTEMPTS, limit: int = WEAK_SKILL_LIMIT
) -> list[str]:
    """The ``limit`` lowest-accuracy skill tags; skills with too few answers are ignored."""
    return [row["skill"] for row in get_skill_accuracy(performance, min_attempts)[:limit]]


def has_enough_data_for_smart_practice(performance: dict) -> bool:
    return any(stats.total >= MIN_ATTEMPTS for stats in performance.values())
