"""Streak-based difficulty tiers."""
from ccat_practice.models import Difficulty

MEDIUM_STREAK = 5
HARD_STREAK = 15


def get_difficulty_level(streak: int) -> Difficulty:
    """Map the current daily streak to a question difficulty.

    Args:
        streak: Consecutive days with a solved daily puzzle.

    Returns:
        HARD from 15 days, MEDIUM from 5 days, EASY otherwise.
    """
    if streak >= HARD_STREAK:
        return Difficulty.HARD
    elif streak >= MEDIUM_STREAK:
        return Difficulty.MEDIUM
    return Difficulty.EASY
