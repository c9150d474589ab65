"""
Local speech synthesis tier (last resort, no network).

Only one local utterance plays at a time: every attempt cancels whatever the
host is still speaking before queueing the new text (last request wins).
Cancelling a handle stops only the utterance that handle started.
"""
from __future__ import annotations

import functools
import logging

from .base import (
    DEFAULT_LANGUAGE_TAG,
    PlaybackError,
    SpeechProvider,
    SpeechRequest,
    SpeechTierFailure,
    SynthesisHost,
    TierEvents,
    Utterance,
)
from .preferences import KeyValueStore, get_preferred_voice_name
from .voices import select_voice

logger = logging.getLogger(__name__)


class LocalSynthesisProvider(SpeechProvider):
    """Tier C: the host's own speech engine."""

    def __init__(self, *, host: SynthesisHost, preference_store: KeyValueStore) -> None:
        self._host = host
        self._store = preference_store

    @property
    def name(self) -> str:
        return "local"

    def is_available(self) -> bool:
        return self._host.supports_local_synthesis

    async def warm_up(self) -> None:
        if self.is_available():
            voices = await self._host.list_voices()
            logger.debug("Local host offers %d voice(s)", len(voices))

    async def build_utterance(self, request: SpeechRequest) -> Utterance:
        voice = select_voice(
            await self._host.list_voices(),
            requested_name=request.voice_name,
            preferred_name=get_preferred_voice_name(self._store),
        )
        if voice is None:
            logger.debug("No Spanish voice on host, speaking with default voice as %s", DEFAULT_LANGUAGE_TAG)
        return Utterance(
            text=request.text,
            language_tag=(voice.language_tag if voice and voice.language_tag else DEFAULT_LANGUAGE_TAG),
            voice=voice,
            rate=request.rate,
            pitch=request.pitch,
            volume=request.volume,
        )

    async def attempt(self, request: SpeechRequest, events: TierEvents) -> None:
        if not self.is_available():
            raise SpeechTierFailure("local speech synthesis is not supported")

        utterance = await self.build_utterance(request)
        self._host.cancel()
        try:
            token = self._host.speak(
                utterance,
                on_start=events.started,
                on_end=events.completed,
                on_error=events.failed,
            )
        except PlaybackError as e:
            raise SpeechTierFailure(f"local synthesis rejected: {e}") from e
        events.attach_canceller(functools.partial(self._host.cancel, token))

        logger.debug(
            "Local utterance queued: voice=%s lang=%s rate=%.2f",
            utterance.voice.name if utterance.voice else "(default)",
            utterance.language_tag,
            utterance.rate,
        )
