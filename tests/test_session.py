from __future__ import annotations

import random

import pytest

from spanish_cards.session import QuizSession, QuizSessionError, performance_rating
from spanish_cards.vocabulary import VocabularyWord


def _words(n: int, category: str | None = "food") -> list[VocabularyWord]:
    return [
        VocabularyWord(id=str(i), spanish=f"es{i}", english=f"en{i}", category=category)
        for i in range(n)
    ]


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestQuizSession:
    def test_start(self) -> None:
        s = QuizSession.start(_words(8), 5, rng=random.Random(1))
        assert s.total_questions == 5
        assert s.index == 0
        assert s.score == 0
        assert not s.is_answered
        assert not s.completed
        assert s.current is s.questions[0]

    def test_correct_answer_scores(self) -> None:
        s = QuizSession.start(_words(5), 5)
        assert s.answer(s.current.correct_answer) is True
        assert s.score == 1
        assert s.is_answered
        assert s.is_correct is True

    def test_wrong_answer(self) -> None:
        s = QuizSession.start(_words(5), 5)
        q = s.current
        wrong = next(o for o in q.options if o != q.correct_answer)
        assert s.answer(wrong) is False
        assert s.score == 0
        assert s.selected_answer == wrong

    def test_second_answer_ignored(self) -> None:
        s = QuizSession.start(_words(5), 5)
        q = s.current
        wrong = next(o for o in q.options if o != q.correct_answer)
        s.answer(wrong)
        assert s.answer(q.correct_answer) is False
        assert s.score == 0
        assert s.selected_answer == wrong

    def test_advance_requires_answer(self) -> None:
        s = QuizSession.start(_words(5), 5)
        with pytest.raises(QuizSessionError):
            s.advance()

    def test_full_run(self) -> None:
        clock = _Clock()
        s = QuizSession.start(_words(6), 4, clock=clock)
        answered = 0
        while s.current is not None:
            q = s.current
            s.answer(q.correct_answer if answered % 2 == 0 else "nope")
            answered += 1
            s.advance()
        assert s.completed
        assert answered == 4
        clock.now += 125
        stats = s.stats()
        assert stats.correct_answers == 2
        assert stats.incorrect_answers == 2
        assert stats.accuracy == 50
        assert stats.time_spent == 125

    def test_answer_after_completion(self) -> None:
        s = QuizSession.start(_words(1), 1)
        s.answer(s.current.correct_answer)
        assert s.advance() is None
        with pytest.raises(QuizSessionError):
            s.answer("en0")
        assert s.advance() is None

    def test_empty_vocabulary_is_completed(self) -> None:
        s = QuizSession.start([], 10)
        assert s.completed
        assert s.current is None
        assert s.stats().accuracy == 0

    def test_category_hidden_in_hard_mode(self) -> None:
        assert QuizSession.start(_words(3), 3).show_category
        assert not QuizSession.start(_words(3), 3, hard_mode=True).show_category
        assert not QuizSession.start(_words(3, category=None), 3).show_category

    def test_restart_keeps_size_and_mode(self) -> None:
        s = QuizSession.start(_words(10), 4, hard_mode=True)
        s.answer(s.current.correct_answer)
        again = s.restart()
        assert again.total_questions == 4
        assert again.hard_mode
        assert again.score == 0
        assert again.index == 0


class TestPerformanceRating:
    @pytest.mark.parametrize(
        "pct,badge",
        [(100, "Excellent"), (90, "Excellent"), (89, "Very Good"), (80, "Very Good"),
         (70, "Good"), (60, "Fair"), (59, "Practice More"), (0, "Practice More")],
    )
    def test_thresholds(self, pct: int, badge: str) -> None:
        assert performance_rating(pct).badge == badge
