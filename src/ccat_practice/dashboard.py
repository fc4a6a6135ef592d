"""Progress screen scoring and statistics."""
from ccat_practice.models import Category, SkillStats, UserProfile
from ccat_practice.prompts import CATEGORY_SKILLS

CATEGORY_NAMES = {
    Category.VERBAL: "Verbal Puzzles",
    Category.QUANTITATIVE: "Number Games",
    Category.NON_VERBAL: "Shape Mysteries",
}


def get_mastery_label(accuracy: float, total: int) -> str:
    if total == 0:
        return "NOT STARTED"
    if accuracy >= 80:
        return "MASTERED"
    elif accuracy >= 60:
        return "GETTING THERE"
    return "KEEP PRACTICING"


def get_mastery_color(accuracy: float, total: int) -> str:
    if total == 0:
        return "dim"
    if accuracy >= 80:
        return "green"
    elif accuracy >= 60:
        return "yellow"
    return "red"


def _percent(stats: SkillStats) -> float:
    return round(stats.accuracy * 100, 1)


def get_skill_breakdown(profile: UserProfile) -> list[dict]:
    """One row per known skill, grouped by category in display order.

    Skills recorded outside the known lists are reported under "Other".
    """
    rows = []
    known = set()
    for category in Category:
        for skill in CATEGORY_SKILLS[category]:
            known.add(skill)
            rows.append(_row(CATEGORY_NAMES[category], skill, profile.performance.get(skill, SkillStats())))
    for skill, stats in sorted(profile.performance.items()):
        if skill not in known:
            rows.append(_row("Other", skill, stats))
    return rows


def _row(category_name: str, skill: str, stats: SkillStats) -> dict:
    accuracy = _percent(stats)
    return {
        "category": category_name,
        "skill": skill,
        "correct": stats.correct,
        "total": stats.total,
        "accuracy": accuracy,
        "label": get_mastery_label(accuracy, stats.total),
        "color": get_mastery_color(accuracy, stats.total),
    }


def get_study_stats(profile: UserProfile) -> dict:
    answered = sum(s.total for s in profile.performance.values())
    avg = round(profile.total_correct_answers / answered * 100, 1) if answered else 0.0
    return {
        "current_streak": profile.current_streak,
        "best_streak": profile.best_streak,
        "quizzes_completed": profile.total_completions,
        "questions_answered": answered,
        "correct_answers": profile.total_correct_answers,
        "avg_accuracy": avg,
        "perfect_scores": profile.perfect_scores,
        "achievements": len(profile.unlocked_achievements),
    }
