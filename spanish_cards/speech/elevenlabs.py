"""
ElevenLabs speech tier (premium, needs an API key).

Uses the non-streaming /v1/text-to-speech/{voice_id} endpoint and asks for
MP3; quiz words are short, so waiting for the whole clip adds little
latency.

The voice settings are fixed. They were tuned for single Spanish words with
the multilingual model and are not exposed to users.

Environment:
  ELEVENLABS_API_KEY=your-key
  ELEVENLABS_VOICE_ID=pNInz6obpgDQGcFmaJgB   # multilingual default
  ELEVENLABS_MODEL=eleven_multilingual_v2
"""
from __future__ import annotations

import logging
from typing import Optional

import aiohttp

from .base import SpeechTierFailure, SynthesisHost
from .cache import AudioCache
from .network import NetworkSpeechProvider

logger = logging.getLogger(__name__)

ELEVENLABS_API_URL = "https://api.elevenlabs.io"

VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.0,
    "use_speaker_boost": True,
}


class ElevenLabsProvider(NetworkSpeechProvider):
    """Tier A: premium network synthesis via ElevenLabs."""

    def __init__(
        self,
        *,
        api_key: Optional[str],
        host: SynthesisHost,
        voice_id: str = "pNInz6obpgDQGcFmaJgB",
        model: str = "eleven_multilingual_v2",
        base_url: str = ELEVENLABS_API_URL,
        timeout_s: float = 10.0,
        connect_timeout_s: float = 5.0,
        cache: Optional[AudioCache] = None,
    ) -> None:
        super().__init__(
            host=host,
            timeout_s=timeout_s,
            connect_timeout_s=connect_timeout_s,
            cache=cache,
        )
        self._api_key = api_key or ""
        self._voice_id = voice_id
        self._model = model
        self._base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return f"elevenlabs/{self._model}"

    @property
    def voice_key(self) -> str:
        return self._voice_id

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _session_headers(self) -> dict[str, str]:
        return {
            "xi-api-key": self._api_key,
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
        }

    async def _fetch_audio(self, session: aiohttp.ClientSession, text: str) -> bytes:
        url = f"{self._base_url}/v1/text-to-speech/{self._voice_id}"
        payload = {
            "text": text,
            "model_id": self._model,
            "voice_settings": VOICE_SETTINGS,
        }
        async with session.post(url, json=payload) as resp:
            if resp.status != 200:
                body = await resp.text()
                logger.error(
                    "ElevenLabs TTS error %d: %s (text=%.50s)",
                    resp.status, body[:200], text,
                )
                raise SpeechTierFailure(f"ElevenLabs API error: {resp.status}")
            audio = await resp.read()

        logger.debug("ElevenLabs: %d bytes for %.40s", len(audio), text)
        return audio
