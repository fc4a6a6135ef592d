"""Achievement catalog and unlock rules."""
from dataclasses import dataclass
from typing import Optional

from ccat_practice.models import Achievement, Category, SessionMode, UserProfile

ACHIEVEMENTS = [
    # First-time achievements
    Achievement("first_quiz", "First Steps", "Complete your first practice quiz.", "🎉"),
    Achievement("perfect_score", "Perfect Score!", "Get a 100% score on any practice quiz.", "🎯"),
    Achievement("daily_puzzle", "Daily Dedication", "Complete your first daily puzzle.", "📅"),
    Achievement("smart_learner", "Smart Learner", "Complete your first Smart Practice quiz.", "💡"),
    # Streaks
    Achievement("streak_5", "On Fire!", "Reach a 5-day streak.", "🔥"),
    Achievement("streak_15", "Unstoppable!", "Reach a 15-day streak.", "🚀"),
    Achievement("streak_30", "Streak Superstar", "Reach a 30-day streak.", "🌟"),
    # Category completions
    Achievement("verbal_10", "Verbal Virtuoso", "Complete 10 Verbal Puzzles.", "🧠"),
    Achievement("quant_10", "Number Ninja", "Complete 10 Number Games.", "🔢"),
    Achievement("nonverbal_10", "Shape Sleuth", "Complete 10 Shape Mysteries.", "🔷"),
    # Aggregates
    Achievement("quiz_whiz", "Quiz Whiz", "Get a perfect score 5 times.", "👑"),
    Achievement("practice_25", "Practice Makes Perfect", "Complete 25 total practice quizzes.", "📚"),
    Achievement("brainiac_100", "Brainiac", "Answer 100 questions correctly.", "💯"),
]

ACHIEVEMENTS_BY_ID = {a.id: a for a in ACHIEVEMENTS}

STREAK_ACHIEVEMENTS = {5: "streak_5", 15: "streak_15", 30: "streak_30"}
CATEGORY_ACHIEVEMENTS = {
    Category.VERBAL: "verbal_10",
    Category.QUANTITATIVE: "quant_10",
    Category.NON_VERBAL: "nonverbal_10",
}
CATEGORY_COMPLETIONS = 10
TOTAL_COMPLETIONS = 25
PERFECT_SCORES = 5
CORRECT_ANSWERS = 100


@dataclass(frozen=True)
class SessionEvent:
    """What just happened, for the rules that depend on a single session."""
    mode: SessionMode
    correct: int
    total: int
    completions_before: int = 0
    quiz_size: int = 0

    @property
    def is_perfect(self) -> bool:
        return self.total > 0 and self.correct == self.total and self.correct >= self.quiz_size


def _candidates(profile: UserProfile, event: Optional[SessionEvent]) -> set[str]:
    earned = set()

    for threshold, achievement_id in STREAK_ACHIEVEMENTS.items():
        if profile.current_streak >= threshold:
            earned.add(achievement_id)

    for category, achievement_id in CATEGORY_ACHIEVEMENTS.items():
        if profile.completions_for(SessionMode.for_category(category)) >= CATEGORY_COMPLETIONS:
            earned.add(achievement_id)
    if profile.completions_for(SessionMode.SMART) >= 1:
        earned.add("smart_learner")
    if profile.total_completions >= TOTAL_COMPLETIONS:
        earned.add("practice_25")

    if profile.perfect_scores >= PERFECT_SCORES:
        earned.add("quiz_whiz")
    if profile.total_correct_answers >= CORRECT_ANSWERS:
        earned.add("brainiac_100")

    if event is not None:
        if event.mode.is_practice:
            if event.completions_before == 0:
                earned.add("first_quiz")
            if event.is_perfect:
                earned.add("perfect_score")
        elif event.correct > 0:
            earned.add("daily_puzzle")

    return earned


def evaluate(profile: UserProfile, event: Optional[SessionEvent] = None) -> list[str]:
    """Achievement ids earned but not yet unlocked, in catalog order.

    Pure: the caller adds the returned ids to the profile. Running it again on
    the updated profile yields nothing new.
    """
    earned = _candidates(profile, event)
    return [
        a.id for a in ACHIEVEMENTS
        if a.id in earned and not profile.has_achievement(a.id)
    ]


def get_achievements(achievement_ids) -> list[Achievement]:
    return [ACHIEVEMENTS_BY_ID[i] for i in achievement_ids if i in ACHIEVEMENTS_BY_ID]
