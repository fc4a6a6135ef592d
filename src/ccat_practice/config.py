"""Runtime settings read from the environment.

Settings is a frozen dataclass with a ``validate()`` method that raises
``ValueError`` on invalid values.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ccat_practice.db import DEFAULT_DB_PATH
from ccat_practice.generator import DEFAULT_MODEL
from ccat_practice.quiz import QUESTIONS_PER_QUIZ

DEFAULT_LOG_DIR = str(Path.home() / ".ccat_practice" / "logs")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    db_path: str = DEFAULT_DB_PATH
    api_key: Optional[str] = None
    model_name: str = DEFAULT_MODEL
    questions_per_quiz: int = QUESTIONS_PER_QUIZ
    log_level: str = "INFO"
    log_dir: str = DEFAULT_LOG_DIR

    def validate(self) -> None:
        if self.questions_per_quiz < 1:
            raise ValueError(f"questions_per_quiz must be >= 1, got {self.questions_per_quiz}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level.upper())

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        quiz_size = env.get("CCAT_QUESTIONS_PER_QUIZ")
        try:
            questions_per_quiz = int(quiz_size) if quiz_size else QUESTIONS_PER_QUIZ
        except ValueError as exc:
            raise ValueError(f"CCAT_QUESTIONS_PER_QUIZ must be an integer, got {quiz_size!r}") from exc
        settings = cls(
            db_path=env.get("CCAT_DB_PATH") or DEFAULT_DB_PATH,
            api_key=env.get("GEMINI_API_KEY") or env.get("API_KEY"),
            model_name=env.get("CCAT_MODEL") or DEFAULT_MODEL,
            questions_per_quiz=questions_per_quiz,
            log_level=env.get("CCAT_LOG_LEVEL") or "INFO",
            log_dir=env.get("CCAT_LOG_DIR") or DEFAULT_LOG_DIR,
        )
        settings.validate()
        return settings
