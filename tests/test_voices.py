from __future__ import annotations

from spanish_cards.speech.base import VoiceDescriptor
from spanish_cards.speech.voices import (
    FEMALE_BONUS,
    best_spanish_voice,
    is_spanish_capable,
    normalize_language_tag,
    score_voice,
    select_voice,
    spanish_voices,
)


def _v(name: str, tag: str) -> VoiceDescriptor:
    return VoiceDescriptor(name=name, language_tag=tag)


class TestSpanishVoices:
    def test_normalize_language_tag(self) -> None:
        assert normalize_language_tag("es_MX") == "es-mx"
        assert normalize_language_tag(" ES-es ") == "es-es"
        assert normalize_language_tag("") == ""

    def test_language_tag_match(self) -> None:
        assert is_spanish_capable(_v("Voz", "es-MX"))
        assert is_spanish_capable(_v("Voz", "es_ES"))

    def test_name_match(self) -> None:
        assert is_spanish_capable(_v("Paloma", "en-US"))
        assert is_spanish_capable(_v("Google español", ""))

    def test_non_spanish(self) -> None:
        assert not is_spanish_capable(_v("Alex", "en-US"))
        assert not is_spanish_capable(_v("Thomas", "fr-FR"))

    def test_generic_quality_names_do_not_qualify(self) -> None:
        assert not is_spanish_capable(_v("Jenny Neural", "en-US"))
        assert not is_spanish_capable(_v("Samantha (Premium)", "en-US"))
        assert is_spanish_capable(_v("Elvira Neural", "es-ES"))

    def test_filter_keeps_order(self) -> None:
        voices = [_v("Alex", "en-US"), _v("B", "es-AR"), _v("Thomas", "fr-FR"), _v("A", "es-CO")]
        assert [v.name for v in spanish_voices(voices)] == ["B", "A"]


class TestScoring:
    def test_female_bonus(self) -> None:
        assert score_voice(_v("Paloma", "es-ES")) - score_voice(_v("Jorge", "es-ES")) == FEMALE_BONUS

    def test_regional_order(self) -> None:
        spain = score_voice(_v("Voz", "es-ES"))
        mexico = score_voice(_v("Voz", "es-MX"))
        argentina = score_voice(_v("Voz", "es-AR"))
        generic = score_voice(_v("Voz", "es-US"))
        assert spain > mexico > argentina > generic > 0

    def test_neural_beats_plain(self) -> None:
        assert score_voice(_v("es-ES-AlvaroNeural", "es-ES")) > score_voice(_v("Voz", "es-ES"))

    def test_unknown_voice_scores_zero(self) -> None:
        assert score_voice(_v("Alex", "en-US")) == 0


class TestBestSpanishVoice:
    def test_empty(self) -> None:
        assert best_spanish_voice([]) is None

    def test_no_spanish_voice(self) -> None:
        assert best_spanish_voice([_v("Alex", "en-US"), _v("Thomas", "fr-FR")]) is None

    def test_highest_score_wins(self) -> None:
        voices = [_v("Alex", "en-US"), _v("Google español", "es-ES"), _v("Monica", "es-ES")]
        assert best_spanish_voice(voices).name == "Monica"

    def test_neural_spain_voice_wins(self) -> None:
        voices = [
            _v("Voz", "es-MX"),
            _v("Microsoft Elvira Online", "es-ES"),
            _v("es-ES-ElviraNeural", "es-ES"),
        ]
        assert best_spanish_voice(voices).name == "es-ES-ElviraNeural"

    def test_ties_keep_enumeration_order(self) -> None:
        voices = [_v("Voz B", "es-AR"), _v("Voz A", "es-AR")]
        assert score_voice(voices[0]) == score_voice(voices[1])
        assert best_spanish_voice(voices).name == "Voz B"

    def test_deterministic(self) -> None:
        voices = [_v("Jorge", "es-ES"), _v("Diego", "es-AR"), _v("Paloma", "es-MX")]
        first = best_spanish_voice(voices)
        for _ in range(5):
            assert best_spanish_voice(voices) == first

    def test_preference_short_circuits_ranking(self) -> None:
        voices = [_v("Monica", "es-ES"), _v("Voz", "es-PE")]
        assert best_spanish_voice(voices, preferred_name="Voz").name == "Voz"

    def test_preference_must_be_spanish_candidate(self) -> None:
        voices = [_v("Alex", "en-US"), _v("Monica", "es-ES")]
        assert best_spanish_voice(voices, preferred_name="Alex").name == "Monica"

    def test_missing_preference_falls_back_to_ranking(self) -> None:
        voices = [_v("Jorge", "es-ES"), _v("Monica", "es-ES")]
        assert best_spanish_voice(voices, preferred_name="Gone").name == "Monica"


class TestSelectVoice:
    def test_requested_voice_first(self) -> None:
        voices = [_v("Monica", "es-ES"), _v("Jorge", "es-ES")]
        chosen = select_voice(voices, requested_name="Jorge", preferred_name="Monica")
        assert chosen.name == "Jorge"

    def test_requested_non_spanish_voice_ignored(self) -> None:
        voices = [_v("Alex", "en-US"), _v("Jorge", "es-ES")]
        assert select_voice(voices, requested_name="Alex").name == "Jorge"

    def test_preference_then_ranking(self) -> None:
        voices = [_v("Monica", "es-ES"), _v("Jorge", "es-ES")]
        assert select_voice(voices, preferred_name="Jorge").name == "Jorge"
        assert select_voice(voices).name == "Monica"
