"""
Vocabulary model and the validation boundary for raw word lists.

A vocabulary source (bundled JSON file, uploaded file, or URL) produces a
loosely-typed list of records. validate_vocabulary() is the only way such
records become VocabularyWord objects:

  [{"id": "1", "spanish": "hola", "english": "hello",
    "category": "greetings", "difficulty": "easy"}, ...]

Rules:
  - the value is a list, every element is a dict
  - id / spanish / english are strings, non-empty after trimming
  - category, if present, is a string (blank → None)
  - difficulty, if present, is one of easy / medium / hard
  - ids are unique

Every item is checked. Each offending index keeps only its first error; the
raised error is the one with the lowest index and carries the full list in
``errors``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import aiohttp

logger = logging.getLogger(__name__)

DIFFICULTIES = ("easy", "medium", "hard")


@dataclass(frozen=True)
class VocabularyWord:
    id: str
    spanish: str
    english: str
    category: Optional[str] = None
    difficulty: Optional[str] = None


# Used when the configured vocabulary cannot be loaded.
DEFAULT_VOCABULARY: tuple[VocabularyWord, ...] = (
    VocabularyWord(id="1", spanish="hola", english="hello", category="greetings", difficulty="easy"),
    VocabularyWord(id="2", spanish="adiós", english="goodbye", category="greetings", difficulty="easy"),
)


class VocabularyValidationError(ValueError):
    """A raw vocabulary batch was rejected.

    Attributes:
        index: Offending item index, or None for whole-batch errors.
        reason: Human-readable description without the index.
        errors: Every per-index error found in the batch (first offense per
                index), in index order. Includes this error.
    """

    def __init__(self, reason: str, index: Optional[int] = None) -> None:
        self.index = index
        self.reason = reason
        self.errors: list[VocabularyValidationError] = [self]
        message = reason if index is None else f"{reason} at index {index}"
        super().__init__(message)


class NotAListError(VocabularyValidationError):
    pass


class InvalidItemError(VocabularyValidationError):
    pass


class InvalidIdError(VocabularyValidationError):
    pass


class DuplicateIdError(VocabularyValidationError):
    pass


class InvalidSpanishError(VocabularyValidationError):
    pass


class InvalidEnglishError(VocabularyValidationError):
    pass


class InvalidCategoryError(VocabularyValidationError):
    pass


class InvalidDifficultyError(VocabularyValidationError):
    pass


def _required_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _validate_item(item: Any, index: int, seen_ids: set[str]) -> VocabularyWord:
    if not isinstance(item, dict):
        raise InvalidItemError("Invalid vocabulary item", index)

    word_id = _required_text(item.get("id"))
    if word_id is None:
        raise InvalidIdError("Invalid or missing id", index)
    if word_id in seen_ids:
        raise DuplicateIdError(f"Duplicate id {word_id!r}", index)

    spanish = _required_text(item.get("spanish"))
    if spanish is None:
        raise InvalidSpanishError("Invalid or missing spanish word", index)

    english = _required_text(item.get("english"))
    if english is None:
        raise InvalidEnglishError("Invalid or missing english translation", index)

    category = item.get("category")
    if category is not None:
        if not isinstance(category, str):
            raise InvalidCategoryError("Invalid category", index)
        category = category.strip() or None

    difficulty = item.get("difficulty")
    if difficulty is not None and difficulty != "":
        if not isinstance(difficulty, str) or difficulty.strip() not in DIFFICULTIES:
            raise InvalidDifficultyError(
                "Invalid difficulty level. Must be 'easy', 'medium', or 'hard'", index
            )
        difficulty = difficulty.strip()
    else:
        difficulty = None

    return VocabularyWord(
        id=word_id,
        spanish=spanish,
        english=english,
        category=category,
        difficulty=difficulty,
    )


def validate_vocabulary(data: Any) -> list[VocabularyWord]:
    """Validate raw records and return immutable VocabularyWord objects.

    Raises:
        VocabularyValidationError: a subclass naming the first offending
            index; ``err.errors`` lists every offending index.
    """
    if not isinstance(data, list):
        raise NotAListError("Vocabulary data must be an array")

    words: list[VocabularyWord] = []
    errors: list[VocabularyValidationError] = []
    seen_ids: set[str] = set()

    for index, item in enumerate(data):
        try:
            word = _validate_item(item, index, seen_ids)
        except VocabularyValidationError as e:
            errors.append(e)
            continue
        seen_ids.add(word.id)
        words.append(word)

    if errors:
        first = errors[0]
        first.errors = errors
        logger.debug("Vocabulary rejected: %d invalid item(s), first: %s", len(errors), first)
        raise first

    return words


def load_vocabulary_file(path: str | Path) -> list[VocabularyWord]:
    """Read a JSON vocabulary file and validate it.

    Raises OSError / json.JSONDecodeError for unreadable files and
    VocabularyValidationError for malformed content.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    words = validate_vocabulary(data)
    logger.info("Loaded %d words from %s", len(words), path)
    return words


async def fetch_vocabulary(
    url: str,
    *,
    session: Optional[aiohttp.ClientSession] = None,
    timeout_s: float = 10.0,
) -> list[VocabularyWord]:
    """Download a JSON vocabulary list and validate it.

    Raises aiohttp.ClientError on transport failure or a non-200 status.
    """
    own_session = session is None
    if own_session:
        session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout_s))
    try:
        async with session.get(url) as resp:
            resp.raise_for_status()
            data = await resp.json(content_type=None)
    finally:
        if own_session:
            await session.close()

    words = validate_vocabulary(data)
    logger.info("Fetched %d words from %s", len(words), url)
    return words


def load_vocabulary_or_default(path: str | Path) -> tuple[list[VocabularyWord], Optional[str]]:
    """Load *path*, falling back to DEFAULT_VOCABULARY on any load error.

    Returns (words, error_message). error_message is None on success.
    """
    try:
        return load_vocabulary_file(path), None
    except (OSError, json.JSONDecodeError, VocabularyValidationError) as e:
        logger.error("Error loading vocabulary from %s: %s", path, e)
        return list(DEFAULT_VOCABULARY), str(e)
