"""Data classes for the practice domain model."""
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

MIN_OPTIONS = 4


class PracticeError(Exception):
    """Base class for errors shown to the player."""


class Category(str, Enum):
    VERBAL = "verbal"
    QUANTITATIVE = "quantitative"
    NON_VERBAL = "non-verbal"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SessionMode(str, Enum):
    VERBAL = "verbal"
    QUANTITATIVE = "quantitative"
    NON_VERBAL = "non-verbal"
    SMART = "smart"
    CREATIVE = "creative"
    DAILY = "daily"

    @property
    def is_practice(self) -> bool:
        return self is not SessionMode.DAILY

    @property
    def category(self) -> Optional[Category]:
        return _MODE_CATEGORIES.get(self)

    @classmethod
    def for_category(cls, category: Category) -> "SessionMode":
        return cls(category.value)


_MODE_CATEGORIES = {
    SessionMode.VERBAL: Category.VERBAL,
    SessionMode.QUANTITATIVE: Category.QUANTITATIVE,
    SessionMode.NON_VERBAL: Category.NON_VERBAL,
}

# Modes that own a completion counter.
PRACTICE_MODES = tuple(mode for mode in SessionMode if mode.is_practice)


@dataclass(frozen=True)
class Question:
    text: str
    options: tuple
    correct_index: int
    explanation: str = ""
    sub_category: str = ""
    is_image_based: bool = False

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        """Build a question from its JSON shape, enforcing the option invariants.

        Raises:
            ValueError: if a field is missing, the options are too few or not
                distinct, or the correct index is out of bounds.
        """
        if not isinstance(data, dict):
            raise ValueError("question must be an object")
        text = data.get("question")
        options = data.get("options")
        correct_index = data.get("correct_index")
        explanation = data.get("explanation")
        sub_category = data.get("sub_category")
        if not isinstance(text, str) or not text.strip():
            raise ValueError("question text is missing")
        if not isinstance(options, list) or not all(isinstance(o, str) and o.strip() for o in options):
            raise ValueError(f"options must be non-empty strings: {text!r}")
        if len(options) < MIN_OPTIONS:
            raise ValueError(f"expected at least {MIN_OPTIONS} options, got {len(options)}: {text!r}")
        if len({o.strip().lower() for o in options}) != len(options):
            raise ValueError(f"options are not distinct: {text!r}")
        if isinstance(correct_index, bool) or not isinstance(correct_index, int):
            raise ValueError(f"correct_index must be an integer: {text!r}")
        if not 0 <= correct_index < len(options):
            raise ValueError(f"correct_index {correct_index} out of range: {text!r}")
        if not isinstance(explanation, str) or not explanation.strip():
            raise ValueError(f"explanation is missing: {text!r}")
        if not isinstance(sub_category, str) or not sub_category.strip():
            raise ValueError(f"sub_category is missing: {text!r}")
        return cls(
            text=text,
            options=tuple(options),
            correct_index=correct_index,
            explanation=explanation,
            sub_category=sub_category.strip().lower(),
            is_image_based=bool(data.get("is_image_based", False)),
        )

    def to_dict(self) -> dict:
        return {
            "question": self.text,
            "options": list(self.options),
            "is_image_based": self.is_image_based,
            "correct_index": self.correct_index,
            "explanation": self.explanation,
            "sub_category": self.sub_category,
        }


@dataclass(frozen=True)
class UserAnswer:
    question_index: int
    chosen_index: int
    is_correct: bool


@dataclass(frozen=True)
class SkillStats:
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    icon: str


def _default_completions() -> dict:
    return {mode.value: 0 for mode in PRACTICE_MODES}


@dataclass(frozen=True)
class UserProfile:
    grade: Optional[int] = None
    current_streak: int = 0
    best_streak: int = 0
    last_completed_date: Optional[str] = None  # ISO date
    unlocked_achievements: tuple = ()
    quiz_completions: dict = field(default_factory=_default_completions)
    performance: dict = field(default_factory=dict)  # skill tag -> SkillStats
    perfect_scores: int = 0
    total_correct_answers: int = 0

    @property
    def total_completions(self) -> int:
        return sum(self.quiz_completions.values())

    def completions_for(self, mode: SessionMode) -> int:
        return self.quiz_completions.get(mode.value, 0)

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self.unlocked_achievements

    def to_dict(self) -> dict:
        return {
            "grade": self.grade,
            "current_streak": self.current_streak,
            "best_streak": self.best_streak,
            "last_completed_date": self.last_completed_date,
            "unlocked_achievements": list(self.unlocked_achievements),
            "quiz_completions": dict(self.quiz_completions),
            "performance": {
                skill: {"correct": stats.correct, "total": stats.total}
                for skill, stats in self.performance.items()
            },
            "perfect_scores": self.perfect_scores,
            "total_correct_answers": self.total_correct_answers,
        }

    @classmethod
    def from_dict(cls, data) -> "UserProfile":
        """Merge saved data over the defaults.

        Fields missing from older saves, or holding values of the wrong type,
        fall back to their defaults one by one instead of discarding the profile.
        """
        if not isinstance(data, dict):
            logger.warning("Saved profile is not an object; using defaults")
            return cls()

        grade = data.get("grade")
        if not _is_count(grade) or grade < 1:
            grade = None

        last_completed = data.get("last_completed_date")
        if not _is_iso_date(last_completed):
            last_completed = None

        achievements = data.get("unlocked_achievements")
        unlocked = []
        if isinstance(achievements, list):
            for achievement_id in achievements:
                if isinstance(achievement_id, str) and achievement_id not in unlocked:
                    unlocked.append(achievement_id)

        completions = _default_completions()
        saved_completions = data.get("quiz_completions")
        if isinstance(saved_completions, dict):
            for mode, count in saved_completions.items():
                if mode in completions and _is_count(count):
                    completions[mode] = count

        performance = {}
        saved_performance = data.get("performance")
        if isinstance(saved_performance, dict):
            for skill, stats in saved_performance.items():
                if not isinstance(stats, dict):
                    continue
                correct, total = stats.get("correct"), stats.get("total")
                if _is_count(correct) and _is_count(total):
                    performance[skill] = SkillStats(correct=min(correct, total), total=total)

        current_streak = _count_or_zero(data, "current_streak")
        return cls(
            grade=grade,
            current_streak=current_streak,
            best_streak=max(_count_or_zero(data, "best_streak"), current_streak),
            last_completed_date=last_completed,
            unlocked_achievements=tuple(unlocked),
            quiz_completions=completions,
            performance=performance,
            perfect_scores=_count_or_zero(data, "perfect_scores"),
            total_correct_answers=_count_or_zero(data, "total_correct_answers"),
        )


def _is_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _count_or_zero(data: dict, key: str) -> int:
    value = data.get(key)
    return value if _is_count(value) else 0


def _is_iso_date(value) -> bool:
    if not isinstance(value, str):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True
