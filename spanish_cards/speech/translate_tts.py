"""
Free network speech tier: the public translate TTS endpoint.

No credential needed. The endpoint takes the text in the query string and
returns MP3. It is unofficial and rate limited, so it sits below the premium
tier and above local synthesis.
"""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import aiohttp

from .base import SpeechTierFailure, SynthesisHost
from .cache import AudioCache
from .network import NetworkSpeechProvider

logger = logging.getLogger(__name__)

TRANSLATE_TTS_URL = "https://translate.google.com/translate_tts"


def build_translate_tts_url(
    text: str,
    *,
    language: str = "es",
    base_url: str = TRANSLATE_TTS_URL,
) -> str:
    # spaces become %20, not "+"
    return (
        f"{base_url}?ie=UTF-8&tl={quote(language, safe='')}&client=tw-ob"
        f"&q={quote(text, safe='')}&tk=1"
    )


class TranslateTTSProvider(NetworkSpeechProvider):
    """Tier B: free network synthesis."""

    def __init__(
        self,
        *,
        host: SynthesisHost,
        language: str = "es",
        base_url: str = TRANSLATE_TTS_URL,
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
        self._language = language
        self._base_url = base_url

    @property
    def name(self) -> str:
        return "translate-tts"

    @property
    def voice_key(self) -> str:
        return self._language

    def _session_headers(self) -> dict[str, str]:
        # the endpoint rejects requests without a browser-like agent
        return {"User-Agent": "Mozilla/5.0", "Accept": "audio/mpeg"}

    async def _fetch_audio(self, session: aiohttp.ClientSession, text: str) -> bytes:
        url = build_translate_tts_url(text, language=self._language, base_url=self._base_url)
        async with session.get(url) as resp:
            if resp.status != 200:
                logger.warning("Translate TTS error %d (text=%.50s)", resp.status, text)
                raise SpeechTierFailure(f"translate TTS error: {resp.status}")
            return await resp.read()
