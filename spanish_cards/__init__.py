"""Spanish→English vocabulary quiz: question generation and speech output."""
from .quiz import (
    QuizQuestion,
    accuracy,
    build_question,
    format_elapsed,
    generate_questions,
    pick_distractors,
    shuffle,
)
from .session import GameStats, QuizSession, QuizSessionError, performance_rating
from .vocabulary import (
    DEFAULT_VOCABULARY,
    VocabularyValidationError,
    VocabularyWord,
    fetch_vocabulary,
    load_vocabulary_file,
    load_vocabulary_or_default,
    validate_vocabulary,
)

__all__ = [
    "QuizQuestion",
    "accuracy",
    "build_question",
    "format_elapsed",
    "generate_questions",
    "pick_distractors",
    "shuffle",
    "GameStats",
    "QuizSession",
    "QuizSessionError",
    "performance_rating",
    "DEFAULT_VOCABULARY",
    "VocabularyValidationError",
    "VocabularyWord",
    "fetch_vocabulary",
    "load_vocabulary_file",
    "load_vocabulary_or_default",
    "validate_vocabulary",
]
