"""Interactive CLI application."""
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table
from rich.text import Text

from ccat_practice.cache import QuestionPoolLoader, get_cached_pool
from ccat_practice.config import Settings
from ccat_practice.dashboard import get_skill_breakdown, get_study_stats
from ccat_practice.dates import is_today, today_iso
from ccat_practice.db import init_db
from ccat_practice.difficulty import get_difficulty_level
from ccat_practice.generator import ChatMessage, ContentGenerator, GeminiContentGenerator
from ccat_practice.logging_config import setup_logging
from ccat_practice.models import Category, PracticeError, Question, SessionMode, UserAnswer
from ccat_practice.achievements import ACHIEVEMENTS
from ccat_practice.progress import (
    load_profile, record_creative_completion, record_session, set_grade, update_profile,
)
from ccat_practice.prompts import get_grade_text
from ccat_practice.quiz import build_category_quiz, build_daily_puzzle, build_smart_practice
from ccat_practice.review import has_enough_data_for_smart_practice
from ccat_practice.session import QuizSession
from ccat_practice.shapes import parse_shape

logger = logging.getLogger(__name__)
console = Console()

GRADES = [str(g) for g in range(1, 9)]
EXIT_WORDS = ("q", "menu")
CATEGORY_COMMANDS = {
    "verbal": Category.VERBAL,
    "quantitative": Category.QUANTITATIVE,
    "non-verbal": Category.NON_VERBAL,
}


class SessionExitRequested(Exception):
    """The player typed q or menu in the middle of a session."""


@dataclass
class AppState:
    settings: Settings
    generator: Optional[ContentGenerator] = None
    loader: Optional[QuestionPoolLoader] = None
    pool: Optional[dict] = None
    pool_key: Optional[tuple] = None

    @property
    def db_path(self) -> str:
        return self.settings.db_path


def session_prompt(prompt: str, choices: Optional[list] = None, default: str = "") -> str:
    if choices is not None:
        choices = [*choices, *EXIT_WORDS]
        answer = Prompt.ask(prompt, choices=choices, show_choices=False)
    else:
        answer = Prompt.ask(prompt, default=default, show_default=False)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list) -> int:
    return int(session_prompt(prompt, choices=choices))


def show_welcome():
    console.print(Panel(
        "[bold]CCAT Practice[/bold]\n[dim]Puzzles, number games and shape mysteries[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu(state: AppState):
    profile = load_profile(state.db_path)
    difficulty = get_difficulty_level(profile.current_streak)
    daily = "[green]solved today[/green]" if is_today(profile.last_completed_date) else "[yellow]waiting for you[/yellow]"
    console.print(
        f"\n[bold]{get_grade_text(profile.grade)} grade[/bold]  |  "
        f"Streak: [bold]{profile.current_streak}[/bold] 🔥 (best {profile.best_streak})  |  "
        f"Level: [cyan]{difficulty.value}[/cyan]  |  Daily puzzle: {daily}"
    )
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("verbal", "Verbal Puzzles"),
        ("quantitative", "Number Games"),
        ("non-verbal", "Shape Mysteries"),
        ("daily", "Daily puzzle (keeps your streak going)"),
        ("smart", "Smart practice on your weakest skills"),
        ("creative", "Creative challenge"),
        ("progress", "Your progress and achievements"),
        ("grade", "Change grade"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def choose_grade(state: AppState) -> None:
    grade = IntPrompt.ask("Which grade are you in?", choices=GRADES)
    update_profile(state.db_path, set_grade, grade)
    console.print(f"[green]Great! Questions will be made for {get_grade_text(grade)} graders.[/green]")


def get_pool(state: AppState) -> dict | None:
    """Today's questions for the player's grade and streak level."""
    profile = load_profile(state.db_path)
    difficulty = get_difficulty_level(profile.current_streak)
    key = (profile.grade, difficulty, today_iso())
    if state.pool is not None and state.pool_key == key:
        return state.pool

    if state.loader is None:
        pool = get_cached_pool(state.db_path, profile.grade, difficulty)
        if pool is None:
            console.print("[red]No questions available. Set GEMINI_API_KEY to generate today's questions.[/red]")
            return None
    else:
        try:
            with console.status("Preparing questions..."):
                pool = asyncio.run(state.loader.load(profile.grade, difficulty))
        except KeyboardInterrupt:
            state.loader.abandon(profile.grade, difficulty)
            console.print("\n[dim]Stopped loading questions.[/dim]")
            return None
        except PracticeError as e:
            console.print(f"[red]Could not load questions. {e} Please check your API key and try again.[/red]")
            return None
        if pool is None:
            return None
    state.pool, state.pool_key = pool, key
    return pool


def format_option(question: Question, option: str) -> Text:
    shape = parse_shape(option) if question.is_image_based else None
    if shape is None:
        return Text(option)
    style = shape.color + (" bold" if shape.size == "big" else "")
    text = Text(" ".join([shape.glyph()] * shape.quantity), style=style)
    text.append(f"  {option}", style="dim")
    return text


def show_achievements(achievements: list) -> None:
    if not achievements:
        return
    lines = "\n".join(f"{a.icon}  [bold]{a.name}[/bold]: {a.description}" for a in achievements)
    console.print(Panel(lines, title="Achievement unlocked!", border_style="magenta"))


def run_quiz_session(session: QuizSession, title: str) -> bool:
    """Play a session to the end. Returns False if the player left early."""
    total = len(session.questions)
    console.print(f"\n[bold]{title}[/bold] ({total} question{'s' if total > 1 else ''})  [dim](q to leave)[/dim]\n")
    try:
        while not session.is_completed:
            i = session.current_index
            question = session.current_question
            label = f"Q{i + 1}/{total}." if total > 1 else "Puzzle:"
            console.print(f"[bold]{label}[/bold] {question.text}\n")
            for n, option in enumerate(question.options, 1):
                console.print(Text(f"  {n}) ", style="cyan") + format_option(question, option))
            choices = [str(n) for n in range(1, len(question.options) + 1)]
            answer = session.submit_answer(i, session_int_prompt("\nYour answer", choices) - 1)
            if answer.is_correct:
                console.print("[green]Awesome![/green]")
            else:
                correct = format_option(question, question.correct_option)
                console.print(Text("Good try! Answer: ", style="red") + correct)
            console.print(f"[dim]{question.explanation}[/dim]\n")
            if not session.is_last:
                session_prompt("[dim]Press Enter for the next question[/dim]")
            session.advance()
    except SessionExitRequested:
        session.abandon()
        console.print("[dim]Left the quiz. Nothing was recorded.[/dim]")
        return False
    return True


def play(state: AppState, mode: SessionMode, questions: list, title: str):
    outcomes = []
    session = QuizSession(
        mode, questions, on_complete=lambda s: outcomes.append(
            record_session(state.db_path, s, quiz_size=state.settings.questions_per_quiz)
        ),
    )
    if not run_quiz_session(session, title):
        return
    outcome = outcomes[0]
    if mode is SessionMode.DAILY:
        if outcome.score:
            console.print(f"[green]Daily puzzle solved! Streak: {outcome.profile.current_streak} 🔥[/green]")
        else:
            console.print("[yellow]Not quite. Try the daily puzzle again![/yellow]")
        show_achievements(outcome.new_achievements)
        return
    show_results(state, session)
    show_achievements(outcome.new_achievements)


def show_results(state: AppState, session: QuizSession):
    total = len(session.questions)
    console.print(f"[bold]Score: {session.score}/{total} ({session.score / total * 100:.0f}%)[/bold]\n")
    table = Table(title="Review")
    table.add_column("#", justify="right")
    table.add_column("Question")
    table.add_column("Result")
    wrong = []
    for i, question in enumerate(session.questions):
        answer = session.answer_for(i)
        if answer.is_correct:
            result = "[green]correct[/green]"
        else:
            result = "[red]missed[/red]"
            wrong.append(i)
        table.add_row(str(i + 1), question.text, result)
    console.print(table)

    if wrong and state.generator is not None:
        choice = Prompt.ask(
            "Ask Sparky about a missed question? (number, Enter to skip)",
            choices=[str(i + 1) for i in wrong] + [""], show_choices=False, default="",
        )
        if choice:
            index = int(choice) - 1
            cmd_tutor(state, session.questions[index], session.answer_for(index))


def cmd_practice(state: AppState, category: Category):
    questions = build_category_quiz(get_pool(state), category, count=state.settings.questions_per_quiz)
    if not questions:
        console.print("[yellow]No questions available for this category today.[/yellow]")
        return
    play(state, SessionMode.for_category(category), questions, category.value.title())


def cmd_daily(state: AppState):
    profile = load_profile(state.db_path)
    if is_today(profile.last_completed_date):
        console.print("[green]You already solved today's puzzle. Come back tomorrow![/green]")
        return
    questions = build_daily_puzzle(get_pool(state))
    if not questions:
        console.print("[yellow]No daily puzzle available right now.[/yellow]")
        return
    play(state, SessionMode.DAILY, questions, "Daily Puzzle")


def cmd_smart(state: AppState):
    profile = load_profile(state.db_path)
    if not has_enough_data_for_smart_practice(profile.performance):
        console.print("[yellow]Answer a few more practice questions so Sparky can find your weak spots.[/yellow]")
        return
    questions = build_smart_practice(
        get_pool(state), profile.performance, count=state.settings.questions_per_quiz,
    )
    if not questions:
        console.print("[yellow]No questions available right now.[/yellow]")
        return
    play(state, SessionMode.SMART, questions, "Smart Practice")


def cmd_creative(state: AppState):
    if state.generator is None:
        console.print("[red]The creative challenge needs GEMINI_API_KEY to be set.[/red]")
        return
    grade = load_profile(state.db_path).grade
    try:
        with console.status("Sparking creativity..."):
            prompt = asyncio.run(state.generator.generate_prompt(grade))
        console.print(Panel(prompt, title="Creative Challenge", border_style="magenta"))
        answer = Prompt.ask("Your answer")
        if not answer.strip():
            return
        with console.status("Reading your answer..."):
            feedback = asyncio.run(state.generator.evaluate_open_answer(prompt, answer, grade))
    except PracticeError as e:
        console.print(f"[red]{e} Please try again.[/red]")
        return
    console.print(Panel(feedback, title="Sparky says", border_style="green"))
    outcome = record_creative_completion(state.db_path)
    show_achievements(outcome.new_achievements)


def cmd_tutor(state: AppState, question: Question, user_answer: UserAnswer):
    grade = load_profile(state.db_path).grade
    history = []
    message = "Can you help me understand this question?"
    console.print("[dim]Chatting with Sparky. Press Enter on an empty line to stop.[/dim]")
    while message:
        try:
            with console.status("Sparky is thinking..."):
                reply = asyncio.run(
                    state.generator.tutor_reply(question, user_answer, grade, history, message)
                )
        except PracticeError as e:
            console.print(f"[red]{e}[/red]")
            return
        history = [*history, ChatMessage("user", message), ChatMessage("model", reply)]
        console.print(f"[bold magenta]Sparky:[/bold magenta] {reply}")
        message = Prompt.ask("[bold]You[/bold]", default="", show_default=False).strip()


def cmd_progress(state: AppState):
    profile = load_profile(state.db_path)
    stats = get_study_stats(profile)
    console.print(Panel(
        f"Streak: [bold]{stats['current_streak']}[/bold] 🔥  Best: [bold]{stats['best_streak']}[/bold]\n"
        f"Quizzes: [bold]{stats['quizzes_completed']}[/bold]  |  "
        f"Correct answers: [bold]{stats['correct_answers']}[/bold]  |  "
        f"Accuracy: [bold]{stats['avg_accuracy']}%[/bold]  |  "
        f"Perfect scores: [bold]{stats['perfect_scores']}[/bold]",
        title="Your Progress", border_style="blue",
    ))

    table = Table(title="Skills")
    table.add_column("Category", style="cyan")
    table.add_column("Skill")
    table.add_column("Correct", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Status")
    for row in get_skill_breakdown(profile):
        table.add_row(
            row["category"], row["skill"], f"{row['correct']}/{row['total']}",
            f"{row['accuracy']:.0f}%", f"[{row['color']}]{row['label']}[/{row['color']}]",
        )
    console.print(table)

    badges = Table(title=f"Achievements ({stats['achievements']}/{len(ACHIEVEMENTS)})")
    badges.add_column("")
    badges.add_column("Name")
    badges.add_column("How to earn")
    for achievement in ACHIEVEMENTS:
        unlocked = profile.has_achievement(achievement.id)
        icon = achievement.icon if unlocked else "🔒"
        style = "bold" if unlocked else "dim"
        badges.add_row(icon, f"[{style}]{achievement.name}[/{style}]", achievement.description)
    console.print(badges)

    if state.generator is not None and profile.performance:
        if Prompt.ask("Get a summary from Sparky?", choices=["y", "n"], default="n") == "y":
            try:
                with console.status("Sparky is looking at your progress..."):
                    summary = asyncio.run(state.generator.summarize_progress(profile.performance, profile.grade))
            except PracticeError as e:
                console.print(f"[red]{e}[/red]")
                return
            console.print(Panel(summary, title="Sparky says", border_style="green"))


def build_state(settings: Settings) -> AppState:
    state = AppState(settings=settings)
    try:
        state.generator = GeminiContentGenerator(settings.api_key, settings.model_name)
    except PracticeError as e:
        console.print(f"[yellow]{e} Only cached questions will be available.[/yellow]")
        return state
    state.loader = QuestionPoolLoader(settings.db_path, state.generator)
    return state


def main():
    try:
        settings = Settings.from_env()
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)
    setup_logging(settings.log_dir, settings.level)
    init_db(settings.db_path)
    state = build_state(settings)

    show_welcome()
    if load_profile(settings.db_path).grade is None:
        choose_grade(state)

    while True:
        show_menu(state)
        choice = Prompt.ask("\n[bold]>[/bold]", default="daily").strip().lower()
        try:
            if choice in CATEGORY_COMMANDS:
                cmd_practice(state, CATEGORY_COMMANDS[choice])
            elif choice == "daily":
                cmd_daily(state)
            elif choice == "smart":
                cmd_smart(state)
            elif choice == "creative":
                cmd_creative(state)
            elif choice == "progress":
                cmd_progress(state)
            elif choice == "grade":
                choose_grade(state)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you tomorrow for the next puzzle![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command %r failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
