"""
Quiz session state held by the caller.

The generator only produces the question list; a QuizSession walks through
it, records one answer per question and reports the final stats.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .quiz import QuizQuestion, accuracy, generate_questions
from .vocabulary import VocabularyWord

logger = logging.getLogger(__name__)

DEFAULT_QUESTION_COUNT = 10


class QuizSessionError(RuntimeError):
    pass


@dataclass(frozen=True)
class GameStats:
    correct_answers: int
    incorrect_answers: int
    accuracy: int
    time_spent: int  # whole seconds


@dataclass(frozen=True)
class Performance:
    badge: str
    message: str


# (minimum accuracy, badge, message), checked top to bottom
_PERFORMANCE_LEVELS = (
    (90, "Excellent", "Outstanding!"),
    (80, "Very Good", "Great work!"),
    (70, "Good", "Good job!"),
    (60, "Fair", "Not bad!"),
)


def performance_rating(accuracy_pct: int) -> Performance:
    for threshold, badge, message in _PERFORMANCE_LEVELS:
        if accuracy_pct >= threshold:
            return Performance(badge=badge, message=message)
    return Performance(badge="Practice More", message="Keep practicing!")


@dataclass
class QuizSession:
    questions: list[QuizQuestion]
    hard_mode: bool = False
    clock: Callable[[], float] = time.monotonic
    vocabulary: Sequence[VocabularyWord] = ()

    index: int = 0
    score: int = 0
    selected_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    completed: bool = False
    started_at: float = field(default=0.0)

    def __post_init__(self) -> None:
        self.started_at = self.clock()
        if not self.questions:
            self.completed = True

    @classmethod
    def start(
        cls,
        words: Sequence[VocabularyWord],
        count: int = DEFAULT_QUESTION_COUNT,
        *,
        hard_mode: bool = False,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "QuizSession":
        questions = generate_questions(words, count, rng)
        logger.info(
            "Quiz started: %d question(s) from %d word(s) hard_mode=%s",
            len(questions), len(words), hard_mode,
        )
        return cls(questions=questions, hard_mode=hard_mode, clock=clock, vocabulary=tuple(words))

    def restart(self, rng: Optional[random.Random] = None) -> "QuizSession":
        """New session over the same vocabulary, size and mode."""
        return QuizSession.start(
            self.vocabulary,
            self.total_questions,
            hard_mode=self.hard_mode,
            rng=rng,
            clock=self.clock,
        )

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current(self) -> Optional[QuizQuestion]:
        if self.completed:
            return None
        return self.questions[self.index]

    @property
    def is_answered(self) -> bool:
        return self.selected_answer is not None

    @property
    def show_category(self) -> bool:
        q = self.current
        return q is not None and bool(q.word.category) and not self.hard_mode

    def answer(self, option: str) -> bool:
        """Record *option* for the current question.

        Only the first answer counts; repeated calls return the recorded
        result without re-scoring.
        """
        q = self.current
        if q is None:
            raise QuizSessionError("Quiz is already completed")
        if self.is_answered:
            return bool(self.is_correct)

        self.selected_answer = option
        self.is_correct = q.is_correct(option)
        if self.is_correct:
            self.score += 1
        return self.is_correct

    def advance(self) -> Optional[QuizQuestion]:
        """Move to the next question; returns it, or None once completed."""
        if self.completed:
            return None
        if not self.is_answered:
            raise QuizSessionError("Answer the current question before moving on")

        self.selected_answer = None
        self.is_correct = None
        if self.index + 1 >= self.total_questions:
            self.completed = True
            logger.info("Quiz completed: score=%d/%d", self.score, self.total_questions)
            return None
        self.index += 1
        return self.questions[self.index]

    def time_spent(self) -> int:
        return max(int(self.clock() - self.started_at), 0)

    def stats(self) -> GameStats:
        return GameStats(
            correct_answers=self.score,
            incorrect_answers=self.total_questions - self.score,
            accuracy=accuracy(self.score, self.total_questions),
            time_spent=self.time_spent(),
        )
