"""Content generator interface and its Gemini implementation.

The practice engine never writes questions itself. It asks a
:class:`ContentGenerator` for a batch per category and treats every failure
as a :class:`ContentGenerationError` that the UI reports to the player.
Retries are left to the caller (the CLI simply offers to try again).
"""
import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

import google.generativeai as genai

from ccat_practice import prompts
from ccat_practice.models import Category, Difficulty, PracticeError, Question, UserAnswer

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
QUESTION_TEMPERATURE = 0.9

_JSON_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class ContentGenerationError(PracticeError):
    """The content generator was unreachable or returned unusable data."""


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "user" or "model"
    text: str


class ContentGenerator(ABC):
    @abstractmethod
    async def generate_questions(
        self, category: Category, difficulty: Difficulty, grade: int
    ) -> list[Question]:
        """Return a batch of validated questions for one category."""

    @abstractmethod
    async def generate_prompt(self, grade: int) -> str:
        """Return one open-ended creative question."""

    @abstractmethod
    async def evaluate_open_answer(self, prompt: str, answer: str, grade: int) -> str:
        """Return encouraging feedback on a creative answer."""

    @abstractmethod
    async def tutor_reply(
        self,
        question: Question,
        user_answer: UserAnswer,
        grade: int,
        history: list[ChatMessage],
        message: str,
    ) -> str:
        """Continue a tutoring chat about a question the player got wrong."""

    @abstractmethod
    async def summarize_progress(self, performance: dict, grade: int) -> str:
        """Return a short coaching summary of per-skill performance."""


def parse_questions(payload) -> list[Question]:
    """Turn a generator response into questions.

    Accepts a JSON string (optionally wrapped in a markdown code fence) or an
    already-decoded list. Invalid items and repeated question texts are dropped.

    Raises:
        ContentGenerationError: if the payload is not a JSON list.
    """
    if isinstance(payload, str):
        try:
            payload = json.loads(_JSON_FENCE.sub("", payload.strip()))
        except json.JSONDecodeError as exc:
            raise ContentGenerationError(f"Generator returned invalid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise ContentGenerationError("Generator did not return a list of questions.")

    questions = []
    seen = set()
    for item in payload:
        try:
            question = Question.from_dict(item)
        except ValueError as exc:
            logger.warning("Dropping generated question: %s", exc)
            continue
        if question.text in seen:
            continue
        seen.add(question.text)
        questions.append(question)
    return questions


async def fetch_question_pool(
    generator: ContentGenerator, difficulty: Difficulty, grade: int
) -> dict:
    """Fetch all three categories concurrently.

    The pool is all-or-nothing: if any category fails or comes back with no
    usable questions, no partial pool is returned.
    """
    categories = list(Category)
    results = await asyncio.gather(
        *(generator.generate_questions(c, difficulty, grade) for c in categories),
        return_exceptions=True,
    )
    pool = {}
    failed = []
    for category, result in zip(categories, results):
        if isinstance(result, BaseException):
            logger.error("Failed to fetch %s questions: %s", category.value, result)
            failed.append(category.value)
        elif not result:
            logger.error("No usable %s questions in the generated batch", category.value)
            failed.append(category.value)
        else:
            pool[category] = list(result)
    if failed:
        raise ContentGenerationError(
            f"Failed to fetch questions for the following categories: {', '.join(failed)}."
        )
    logger.info(
        "Fetched question pool (grade %d, %s): %s",
        grade, difficulty.value,
        ", ".join(f"{c.value}={len(qs)}" for c, qs in pool.items()),
    )
    return pool


class GeminiContentGenerator(ContentGenerator):
    """Content generator backed by Google's Gemini models."""

    def __init__(self, api_key: str | None, model_name: str = DEFAULT_MODEL):
        if not api_key:
            raise ContentGenerationError(
                "No Gemini API key configured. Set GEMINI_API_KEY and try again."
            )
        genai.configure(api_key=api_key)
        self.model_name = model_name

    async def _request(self, what: str, request) -> str:
        try:
            response = await request
            text = response.text
        except Exception as exc:
            logger.error("Gemini request for %s failed: %s", what, exc)
            if "API key not valid" in str(exc):
                raise ContentGenerationError(
                    "The API key is invalid. Please check your configuration."
                ) from exc
            raise ContentGenerationError(f"Could not generate {what}.") from exc
        return text.strip()

    async def generate_questions(self, category, difficulty, grade):
        model = genai.GenerativeModel(
            self.model_name,
            generation_config={
                "response_mime_type": "application/json",
                "temperature": QUESTION_TEMPERATURE,
            },
        )
        prompt = prompts.build_question_prompt(category, difficulty, grade)
        what = f"{category.value} questions"
        text = await self._request(what, model.generate_content_async(prompt))
        try:
            return parse_questions(text)
        except ContentGenerationError as exc:
            raise ContentGenerationError(f"Could not generate {what}: {exc}") from exc

    async def generate_prompt(self, grade):
        model = genai.GenerativeModel(self.model_name)
        return await self._request(
            "a creative prompt",
            model.generate_content_async(prompts.build_creative_prompt(grade)),
        )

    async def evaluate_open_answer(self, prompt, answer, grade):
        model = genai.GenerativeModel(self.model_name)
        return await self._request(
            "feedback for your answer",
            model.generate_content_async(prompts.build_feedback_prompt(prompt, answer, grade)),
        )

    async def tutor_reply(self, question, user_answer, grade, history, message):
        model = genai.GenerativeModel(
            self.model_name,
            system_instruction=prompts.build_tutor_instruction(question, user_answer, grade),
        )
        chat = model.start_chat(
            history=[{"role": m.role, "parts": [m.text]} for m in history]
        )
        return await self._request("a tutor reply", chat.send_message_async(message))

    async def summarize_progress(self, performance, grade):
        if not performance:
            return (
                "You're just getting started! Complete some quizzes to see your "
                "progress summary here."
            )
        model = genai.GenerativeModel(self.model_name)
        return await self._request(
            "a progress summary",
            model.generate_content_async(prompts.build_summary_prompt(performance, grade)),
        )
