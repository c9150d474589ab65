"""
Quiz question generation.

Turns a validated vocabulary list into a randomized multiple-choice sequence:

  questions = generate_questions(words, 10)
  for q in questions:
      print(q.word.spanish, q.options)

Every function takes an optional ``rng`` (random.Random) so a caller can seed
the quiz; the module-level generator is used otherwise.

Degenerate input never raises: an empty pool, a zero count or too few
distinct translations give a shorter (but valid) result.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Optional, Sequence, TypeVar

from .vocabulary import VocabularyWord

T = TypeVar("T")

OPTIONS_PER_QUESTION = 4


@dataclass(frozen=True)
class QuizQuestion:
    """One multiple-choice question.

    Attributes:
        word: The vocabulary word being asked.
        options: Correct translation plus up to 3 distractors, shuffled.
        correct_answer: Always ``word.english``; always one of ``options``.
    """
    word: VocabularyWord
    options: tuple[str, ...]
    correct_answer: str

    def is_correct(self, answer: str) -> bool:
        return answer == self.correct_answer


def shuffle(sequence: Sequence[T], rng: Optional[random.Random] = None) -> list[T]:
    """Return a new list with the elements of *sequence* in random order.

    Fisher–Yates: walk from the last index down to 1 and swap each slot with
    a uniformly chosen slot in [0, i]. The input is not modified.
    """
    rng = rng or random
    shuffled = list(sequence)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def pick_distractors(
    correct: VocabularyWord,
    pool: Sequence[VocabularyWord],
    count: int = OPTIONS_PER_QUESTION - 1,
    rng: Optional[random.Random] = None,
) -> list[str]:
    """Pick up to *count* wrong translations for *correct* from *pool*.

    A candidate must have a different id AND a different English translation,
    so a synonym of the right answer is never offered as a wrong one.
    """
    if count <= 0:
        return []
    # dict.fromkeys keeps the first occurrence of repeated translations
    candidates = list(dict.fromkeys(
        w.english for w in pool
        if w.id != correct.id and w.english != correct.english
    ))
    return shuffle(candidates, rng)[:count]


def build_question(
    word: VocabularyWord,
    pool: Sequence[VocabularyWord],
    rng: Optional[random.Random] = None,
) -> QuizQuestion:
    distractors = pick_distractors(word, pool, OPTIONS_PER_QUESTION - 1, rng)
    options = shuffle([word.english, *distractors], rng)
    return QuizQuestion(word=word, options=tuple(options), correct_answer=word.english)


def generate_questions(
    words: Sequence[VocabularyWord],
    count: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> list[QuizQuestion]:
    """Build up to *count* questions (all words when *count* is None).

    Question order is random. Distractors always come from the full *words*
    list, so they may repeat across questions.
    """
    if not words:
        return []
    if count is None:
        count = len(words)
    if count <= 0:
        return []

    selected = shuffle(words, rng)[:min(count, len(words))]
    return [build_question(word, words, rng) for word in selected]


def accuracy(correct: int, total: int) -> int:
    """Percentage of correct answers, rounded half up. 0 when total is 0."""
    if total <= 0:
        return 0
    return int(math.floor(correct / total * 100 + 0.5))


def format_elapsed(seconds: float) -> str:
    """Format whole seconds as ``M:SS`` (e.g. 125 → "2:05")."""
    seconds = max(int(seconds), 0)
    minutes, remaining = divmod(seconds, 60)
    return f"{minutes}:{remaining:02d}"
