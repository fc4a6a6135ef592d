"""Quiz session state machine."""
import logging
from enum import Enum
from typing import Callable, Optional

from ccat_practice.models import Question, SessionMode, UserAnswer

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    AWAITING_ANSWER = "awaiting_answer"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class QuizSession:
    """One attempt at an ordered list of questions.

    The session only moves forward: each question takes exactly one answer,
    ``advance`` is refused until the current question is answered, and
    finishing the last question completes the session and fires
    ``on_complete`` once. An abandoned session never fires it, so partial
    attempts leave no trace in the player's statistics.
    """

    def __init__(
        self,
        mode: SessionMode,
        questions: list[Question],
        on_complete: Optional[Callable[["QuizSession"], None]] = None,
    ):
        if not questions:
            raise ValueError("a session needs at least one question")
        self.mode = mode
        self.questions = list(questions)
        self.answers: list[UserAnswer] = []
        self.current_index = 0
        self.state = SessionState.AWAITING_ANSWER
        self._on_complete = on_complete

    @property
    def current_question(self) -> Question:
        return self.questions[self.current_index]

    @property
    def is_last(self) -> bool:
        return self.current_index == len(self.questions) - 1

    @property
    def is_completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    @property
    def score(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)

    @property
    def is_perfect(self) -> bool:
        return self.is_completed and self.score == len(self.questions)

    def answer_for(self, index: int) -> UserAnswer | None:
        for answer in self.answers:
            if answer.question_index == index:
                return answer
        return None

    def submit_answer(self, index: int, option: int) -> UserAnswer | None:
        """Record the answer to the current question.

        Returns the recorded answer, or None when the call is ignored: the
        session is not awaiting an answer, ``index`` is not the current
        question, the question is already answered, or ``option`` is out of
        range.
        """
        if self.state is not SessionState.AWAITING_ANSWER or index != self.current_index:
            return None
        if self.answer_for(index) is not None:
            return None
        question = self.questions[index]
        if not 0 <= option < len(question.options):
            return None
        answer = UserAnswer(
            question_index=index,
            chosen_index=option,
            is_correct=option == question.correct_index,
        )
        self.answers.append(answer)
        return answer

    def advance(self) -> bool:
        """Move past the answered current question. Returns False if refused."""
        if self.state is not SessionState.AWAITING_ANSWER:
            return False
        if self.answer_for(self.current_index) is None:
            return False
        if self.is_last:
            self.state = SessionState.COMPLETED
            logger.info(
                "Completed %s session: %d/%d", self.mode.value, self.score, len(self.questions)
            )
            if self._on_complete is not None:
                self._on_complete(self)
        else:
            self.current_index += 1
        return True

    def abandon(self) -> None:
        if self.state is SessionState.AWAITING_ANSWER:
            self.state = SessionState.ABANDONED
            logger.info("Abandoned %s session at question %d", self.mode.value, self.current_index + 1)
