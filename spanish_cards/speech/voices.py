"""
Spanish voice discovery and ranking for local synthesis.

Hosts rarely expose a reliable "language family" field, so candidates are
found by language tag (es-XX) or by fuzzy name match against known Spanish
voices. Ranking is data: an ordered (pattern, priority) table matched against
"<language tag> <name>", plus a small bonus for known female voice names.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Sequence

from .base import VoiceDescriptor

logger = logging.getLogger(__name__)

SPANISH_LANGUAGE_PREFIX = "es-"

# "neural" and "premium" only raise the rank of a voice already known to be
# Spanish; on their own they match English voices too.
SPANISH_VOICE_NAMES = (
    "spanish", "español", "espanol",
    "diego", "monica", "jorge", "paloma", "carlos", "lucia",
    "miguel", "esperanza", "enrique", "marisol", "alejandro",
    "carmen", "fernando", "isabella", "ricardo", "sofia",
    "antonio", "maria", "juan", "ana", "pablo", "elena",
    "google español", "microsoft helena", "microsoft pablo",
    "sabina", "tessa", "alvaro", "elvira", "dalia",
)

# Highest matching priority wins; order only matters for readability.
VOICE_PRIORITIES: tuple[tuple[re.Pattern[str], int], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), priority)
    for pattern, priority in (
        (r"es-es.*neural", 15),
        (r"es-mx.*neural", 14),
        (r"alvaro|elvira", 13),
        (r"es-es", 12),
        (r"diego|monica|jorge|paloma", 12),
        (r"es-mx", 11),
        (r"carlos|lucia|miguel|esperanza", 11),
        (r"es-ar", 10),
        (r"google.*español", 10),
        (r"es-co", 9),
        (r"microsoft.*helena|microsoft.*pablo", 9),
        (r"es-cl", 8),
        (r"sabina|tessa|dalia", 8),
        (r"es-pe", 7),
        (r"español|espanol", 6),
        (r"neural", 5),
        (r"spanish", 5),
        (r"premium|enhanced|natural", 4),
        (r"^es-", 3),
    )
)

FEMALE_VOICE_PATTERN = re.compile(
    r"female|mujer|monica|lucia|paloma|helena|sabina|tessa|esperanza|marisol"
    r"|isabella|sofia|carmen|maria|ana|elena|elvira|dalia",
    re.IGNORECASE,
)
FEMALE_BONUS = 2


def normalize_language_tag(tag: str) -> str:
    """Lower-case a language tag and use '-' as separator (es_ES → es-es)."""
    return (tag or "").strip().replace("_", "-").lower()


def is_spanish_capable(voice: VoiceDescriptor) -> bool:
    if normalize_language_tag(voice.language_tag).startswith(SPANISH_LANGUAGE_PREFIX):
        return True
    name = voice.name.lower()
    return any(known in name for known in SPANISH_VOICE_NAMES)


def spanish_voices(voices: Iterable[VoiceDescriptor]) -> list[VoiceDescriptor]:
    return [v for v in voices if is_spanish_capable(v)]


def score_voice(voice: VoiceDescriptor) -> int:
    search_text = f"{normalize_language_tag(voice.language_tag)} {voice.name}".lower()
    score = 0
    for pattern, priority in VOICE_PRIORITIES:
        if pattern.search(search_text):
            score = max(score, priority)
    if FEMALE_VOICE_PATTERN.search(voice.name):
        score += FEMALE_BONUS
    return score


def best_spanish_voice(
    voices: Sequence[VoiceDescriptor],
    preferred_name: Optional[str] = None,
) -> Optional[VoiceDescriptor]:
    """Pick the best Spanish-capable voice, or None if there is none.

    A stored preference that names a candidate wins outright. Otherwise the
    highest score wins; ties keep enumeration order.
    """
    candidates = spanish_voices(voices)
    if not candidates:
        return None

    if preferred_name:
        for voice in candidates:
            if voice.name == preferred_name:
                return voice

    # sorted() is stable: equal scores keep enumeration order
    ranked = sorted(candidates, key=score_voice, reverse=True)
    logger.debug(
        "Spanish voices ranked: %s",
        ", ".join(f"{v.name}={score_voice(v)}" for v in ranked),
    )
    return ranked[0]


def select_voice(
    voices: Sequence[VoiceDescriptor],
    *,
    requested_name: Optional[str] = None,
    preferred_name: Optional[str] = None,
) -> Optional[VoiceDescriptor]:
    """Voice for one local utterance.

    An explicitly requested Spanish-capable voice comes first, then the
    stored preference, then the ranking.
    """
    if requested_name:
        for voice in spanish_voices(voices):
            if voice.name == requested_name:
                return voice
        logger.debug("Requested voice %r is not a Spanish voice on this host", requested_name)
    return best_spanish_voice(voices, preferred_name)
