"""Player profile persistence and progress updates.

Every change to a :class:`UserProfile` goes through one of the named pure
operations below, which take a profile and return a new one. Callers persist
the result with :func:`save_profile`, or use :func:`update_profile` to load,
apply and save in one step.
"""
import json
import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from ccat_practice import achievements
from ccat_practice.dates import is_today, is_yesterday, today_iso
from ccat_practice.db import store_get, store_set
from ccat_practice.models import Achievement, SessionMode, SkillStats, UserProfile
from ccat_practice.quiz import QUESTIONS_PER_QUIZ
from ccat_practice.session import QuizSession

logger = logging.getLogger(__name__)

PROFILE_KEY = "user_profile"


@dataclass(frozen=True)
class PerformanceUpdate:
    skill: str
    is_correct: bool


@dataclass(frozen=True)
class SessionOutcome:
    profile: UserProfile
    score: int
    total: int
    new_achievements: list[Achievement]


def load_profile(db_path: str) -> UserProfile:
    """Load the saved profile. Unreadable data falls back to defaults."""
    raw = store_get(db_path, PROFILE_KEY)
    if raw is None:
        return UserProfile()
    try:
        data = json.loads(raw)
    except ValueError as exc:
        logger.warning("Saved profile is not valid JSON (%s); using defaults", exc)
        return UserProfile()
    return UserProfile.from_dict(data)


def save_profile(db_path: str, profile: UserProfile) -> None:
    store_set(db_path, PROFILE_KEY, json.dumps(profile.to_dict()))


def update_profile(db_path: str, operation, *args, **kwargs) -> UserProfile:
    """Apply one operation to the saved profile and persist the result."""
    profile = load_profile(db_path)
    updated = operation(profile, *args, **kwargs)
    if updated != profile:
        save_profile(db_path, updated)
    return updated


def set_grade(profile: UserProfile, grade: int) -> UserProfile:
    if grade < 1:
        raise ValueError(f"grade must be positive, got {grade}")
    return replace(profile, grade=grade)


def complete_daily_puzzle(profile: UserProfile, today: Optional[date] = None) -> UserProfile:
    """Count today's solved daily puzzle towards the streak (once per day)."""
    if is_today(profile.last_completed_date, today):
        return profile
    if is_yesterday(profile.last_completed_date, today):
        streak = profile.current_streak + 1
    else:
        streak = 1
    return replace(
        profile,
        current_streak=streak,
        best_streak=max(profile.best_streak, streak),
        last_completed_date=today_iso(today),
    )


def add_quiz_completion(profile: UserProfile, mode: SessionMode) -> UserProfile:
    if not mode.is_practice:
        raise ValueError(f"{mode.value} sessions have no completion counter")
    completions = dict(profile.quiz_completions)
    completions[mode.value] = completions.get(mode.value, 0) + 1
    return replace(profile, quiz_completions=completions)


def add_achievements(profile: UserProfile, achievement_ids) -> UserProfile:
    unlocked = list(profile.unlocked_achievements)
    for achievement_id in achievement_ids:
        if achievement_id not in unlocked:
            unlocked.append(achievement_id)
    if len(unlocked) == len(profile.unlocked_achievements):
        return profile
    return replace(profile, unlocked_achievements=tuple(unlocked))


def update_performance(profile: UserProfile, updates: list[PerformanceUpdate]) -> UserProfile:
    performance = dict(profile.performance)
    for update in updates:
        current = performance.get(update.skill, SkillStats())
        performance[update.skill] = SkillStats(
            correct=current.correct + (1 if update.is_correct else 0),
            total=current.total + 1,
        )
    return replace(profile, performance=performance)


def increment_perfect_scores(profile: UserProfile) -> UserProfile:
    return replace(profile, perfect_scores=profile.perfect_scores + 1)


def add_correct_answers(profile: UserProfile, count: int) -> UserProfile:
    if count == 0:
        return profile
    return replace(profile, total_correct_answers=profile.total_correct_answers + count)


def _unlock(db_path: str, profile: UserProfile, event=None) -> tuple[UserProfile, list[Achievement]]:
    new_ids = achievements.evaluate(profile, event)
    if new_ids:
        logger.info("Unlocked achievements: %s", ", ".join(new_ids))
        profile = add_achievements(profile, new_ids)
    save_profile(db_path, profile)
    return profile, achievements.get_achievements(new_ids)


def record_session(
    db_path: str,
    session: QuizSession,
    today: Optional[date] = None,
    quiz_size: int = QUESTIONS_PER_QUIZ,
) -> SessionOutcome:
    """Fold a completed session into the saved profile and unlock achievements.

    Practice sessions update per-skill accuracy, correct-answer and
    completion counters, and perfect scores. A perfect score needs every
    answer right in a full quiz of at least ``quiz_size`` questions. A daily
    puzzle only counts when it was answered correctly, in which case it
    extends the streak.

    Raises:
        ValueError: if the session was not completed.
    """
    if not session.is_completed:
        raise ValueError("only completed sessions can be recorded")

    profile = load_profile(db_path)
    completions_before = profile.total_completions
    score = session.score

    if session.mode.is_practice:
        profile = add_correct_answers(profile, score)
        profile = update_performance(profile, [
            PerformanceUpdate(session.questions[a.question_index].sub_category, a.is_correct)
            for a in session.answers
        ])
        profile = add_quiz_completion(profile, session.mode)
        if session.is_perfect and score >= quiz_size:
            profile = increment_perfect_scores(profile)
    elif score > 0:
        profile = complete_daily_puzzle(profile, today)

    event = achievements.SessionEvent(
        mode=session.mode,
        correct=score,
        total=len(session.questions),
        completions_before=completions_before,
        quiz_size=quiz_size,
    )
    profile, unlocked = _unlock(db_path, profile, event)
    return SessionOutcome(
        profile=profile, score=score, total=len(session.questions), new_achievements=unlocked,
    )


def record_creative_completion(db_path: str) -> SessionOutcome:
    """Count a finished creative challenge."""
    profile = load_profile(db_path)
    profile = add_quiz_completion(profile, SessionMode.CREATIVE)
    profile, unlocked = _unlock(db_path, profile)
    return SessionOutcome(profile=profile, score=0, total=0, new_achievements=unlocked)
