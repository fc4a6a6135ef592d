"""Tests for profile persistence, progress operations and session recording."""
from datetime import date

import pytest

from ccat_practice.db import store_get, store_set
from ccat_practice.models import SessionMode, SkillStats, UserProfile
from ccat_practice.progress import (
    PROFILE_KEY, PerformanceUpdate, add_achievements, add_correct_answers,
    add_quiz_completion, complete_daily_puzzle, increment_perfect_scores, load_profile,
    record_creative_completion, record_session, save_profile, set_grade,
    update_performance, update_profile,
)
from ccat_practice.session import QuizSession

TODAY = date(2024, 3, 1)


def play(mode, questions, options):
    session = QuizSession(mode, questions)
    for i, option in enumerate(options):
        session.submit_answer(i, option)
        session.advance()
    return session


# --- Persistence ---


def test_load_profile_default(db):
    assert load_profile(db) == UserProfile()


def test_save_then_load(db):
    profile = UserProfile(grade=2, current_streak=3, best_streak=3)
    save_profile(db, profile)
    assert load_profile(db) == profile


def test_load_profile_corrupt_json(db):
    store_set(db, PROFILE_KEY, "{{{")
    assert load_profile(db) == UserProfile()


def test_update_profile_persists(db):
    update_profile(db, set_grade, 5)
    assert load_profile(db).grade == 5


def test_update_profile_skips_write_for_noop(db):
    update_profile(db, add_correct_answers, 0)
    assert store_get(db, PROFILE_KEY) is None


# --- Operations ---


def test_set_grade_rejects_zero():
    with pytest.raises(ValueError):
        set_grade(UserProfile(), 0)


def test_streak_extends_from_yesterday():
    profile = UserProfile(current_streak=4, best_streak=4, last_completed_date="2024-02-29")
    updated = complete_daily_puzzle(profile, today=TODAY)
    assert updated.current_streak == 5
    assert updated.best_streak == 5
    assert updated.last_completed_date == "2024-03-01"


def test_streak_same_day_is_noop():
    profile = UserProfile(current_streak=5, best_streak=5, last_completed_date="2024-03-01")
    assert complete_daily_puzzle(profile, today=TODAY) is profile


def test_streak_resets_after_gap():
    profile = UserProfile(current_streak=9, best_streak=12, last_completed_date="2024-02-20")
    updated = complete_daily_puzzle(profile, today=TODAY)
    assert updated.current_streak == 1
    assert updated.best_streak == 12


def test_first_streak():
    updated = complete_daily_puzzle(UserProfile(), today=TODAY)
    assert updated.current_streak == 1
    assert updated.best_streak == 1


def test_add_quiz_completion():
    profile = add_quiz_completion(UserProfile(), SessionMode.NON_VERBAL)
    profile = add_quiz_completion(profile, SessionMode.NON_VERBAL)
    assert profile.quiz_completions["non-verbal"] == 2


def test_add_quiz_completion_rejects_daily():
    with pytest.raises(ValueError):
        add_quiz_completion(UserProfile(), SessionMode.DAILY)


def test_add_achievements_keeps_order_and_uniqueness():
    profile = add_achievements(UserProfile(), ["streak_5", "first_quiz"])
    profile = add_achievements(profile, ["first_quiz", "quiz_whiz"])
    assert profile.unlocked_achievements == ("streak_5", "first_quiz", "quiz_whiz")


def test_add_achievements_nothing_new_is_noop():
    profile = UserProfile(unlocked_achievements=("first_quiz",))
    assert add_achievements(profile, ["first_quiz"]) is profile
    assert add_achievements(profile, []) is profile


def test_update_performance_in_order():
    profile = update_performance(UserProfile(), [
        PerformanceUpdate("analogy", True),
        PerformanceUpdate("analogy", False),
        PerformanceUpdate("word problem", True),
    ])
    assert profile.performance == {
        "analogy": SkillStats(correct=1, total=2),
        "word problem": SkillStats(correct=1, total=1),
    }


def test_counters():
    profile = increment_perfect_scores(UserProfile())
    profile = add_correct_answers(profile, 4)
    assert profile.perfect_scores == 1
    assert profile.total_correct_answers == 4
    assert add_correct_answers(profile, 0) is profile


# --- Session recording ---


def test_record_practice_session(db, make_question):
    questions = [make_question(f"q{i}", "analogy") for i in range(4)]
    session = play(SessionMode.VERBAL, questions, [0, 0, 1, 0])
    outcome = record_session(db, session)
    profile = load_profile(db)
    assert outcome.score == 3
    assert outcome.total == 4
    assert profile.quiz_completions["verbal"] == 1
    assert profile.total_correct_answers == 3
    assert profile.performance["analogy"] == SkillStats(correct=3, total=4)
    assert profile.perfect_scores == 0
    assert [a.id for a in outcome.new_achievements] == ["first_quiz"]
    assert profile.unlocked_achievements == ("first_quiz",)


def test_record_tenth_verbal_perfect_session(db, make_question):
    """9 verbal quizzes done; a perfect 10th unlocks exactly verbal_10 and perfect_score."""
    save_profile(db, UserProfile(
        grade=3,
        quiz_completions={"verbal": 9, "quantitative": 0, "non-verbal": 0, "smart": 0, "creative": 0},
        unlocked_achievements=("first_quiz",),
    ))
    questions = [make_question(f"q{i}") for i in range(5)]
    outcome = record_session(db, play(SessionMode.VERBAL, questions, [0] * 5))
    profile = load_profile(db)
    assert profile.quiz_completions["verbal"] == 10
    assert profile.perfect_scores == 1
    assert {a.id for a in outcome.new_achievements} == {"verbal_10", "perfect_score"}
    assert set(profile.unlocked_achievements) == {"first_quiz", "verbal_10", "perfect_score"}


def test_record_correct_daily_puzzle(db, make_question):
    save_profile(db, UserProfile(current_streak=4, best_streak=4, last_completed_date="2024-02-29"))
    session = play(SessionMode.DAILY, [make_question("puzzle")], [0])
    outcome = record_session(db, session, today=TODAY)
    profile = load_profile(db)
    assert profile.current_streak == 5
    assert profile.last_completed_date == "2024-03-01"
    assert {a.id for a in outcome.new_achievements} == {"daily_puzzle", "streak_5"}
    # The daily puzzle is not practice
    assert profile.total_completions == 0
    assert profile.performance == {}
    assert profile.total_correct_answers == 0


def test_record_wrong_daily_puzzle(db, make_question):
    session = play(SessionMode.DAILY, [make_question("puzzle")], [2])
    outcome = record_session(db, session, today=TODAY)
    profile = load_profile(db)
    assert profile.current_streak == 0
    assert profile.last_completed_date is None
    assert outcome.new_achievements == []


def test_record_daily_puzzle_twice_same_day(db, make_question):
    record_session(db, play(SessionMode.DAILY, [make_question("p")], [0]), today=TODAY)
    record_session(db, play(SessionMode.DAILY, [make_question("p")], [0]), today=TODAY)
    assert load_profile(db).current_streak == 1


def test_record_unfinished_session_rejected(db, make_question):
    session = QuizSession(SessionMode.VERBAL, [make_question("q0"), make_question("q1")])
    session.submit_answer(0, 0)
    session.advance()
    with pytest.raises(ValueError):
        record_session(db, session)
    session.abandon()
    with pytest.raises(ValueError):
        record_session(db, session)
    assert store_get(db, PROFILE_KEY) is None


def test_record_smart_session_unlocks_smart_learner(db, make_question):
    save_profile(db, UserProfile(unlocked_achievements=("first_quiz",)))
    questions = [make_question(f"q{i}", "word problem") for i in range(5)]
    outcome = record_session(db, play(SessionMode.SMART, questions, [1] * 5))
    assert [a.id for a in outcome.new_achievements] == ["smart_learner"]
    assert load_profile(db).performance["word problem"] == SkillStats(0, 5)


def test_record_creative_completion(db):
    outcome = record_creative_completion(db)
    assert outcome.profile.quiz_completions["creative"] == 1
    assert load_profile(db).quiz_completions["creative"] == 1
    assert outcome.new_achievements == []


def test_record_short_quiz_is_not_perfect(db, make_question):
    save_profile(db, UserProfile(unlocked_achievements=("first_quiz",)))
    questions = [make_question(f"q{i}") for i in range(3)]
    outcome = record_session(db, play(SessionMode.VERBAL, questions, [0] * 3))
    assert outcome.score == 3
    assert outcome.new_achievements == []
    assert load_profile(db).perfect_scores == 0


def test_record_perfect_quiz_with_configured_size(db, make_question):
    questions = [make_question(f"q{i}") for i in range(3)]
    outcome = record_session(db, play(SessionMode.VERBAL, questions, [0] * 3), quiz_size=3)
    assert {a.id for a in outcome.new_achievements} == {"first_quiz", "perfect_score"}
    assert load_profile(db).perfect_scores == 1
