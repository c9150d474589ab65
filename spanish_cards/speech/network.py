"""
Shared plumbing for the network speech tiers.

A network tier downloads encoded audio (MP3) for the text, writes it to a
temporary file and hands the path to the host for playback. The temporary
file is removed when playback ends, when it errors, and when the host
rejects it up front.

Required:
  pip install aiohttp certifi
"""
from __future__ import annotations

import abc
import asyncio
import logging
import os
import ssl
import tempfile
from typing import Optional

import aiohttp
import certifi

from .base import (
    PlaybackError,
    SpeechProvider,
    SpeechRequest,
    SpeechTierFailure,
    SynthesisHost,
    TierEvents,
)
from .cache import AudioCache

logger = logging.getLogger(__name__)


def _make_ssl_context() -> ssl.SSLContext:
    """SSL context backed by the certifi CA bundle (works on macOS too)."""
    ctx = ssl.create_default_context()
    ctx.load_verify_locations(cafile=certifi.where())
    return ctx


class NetworkSpeechProvider(SpeechProvider):
    """Base class for tiers that fetch audio over HTTP.

    Subclasses implement ``_fetch_audio`` and, if they need them,
    ``_session_headers`` and ``voice_key``.
    """

    audio_suffix = ".mp3"

    def __init__(
        self,
        *,
        host: SynthesisHost,
        timeout_s: float = 10.0,
        connect_timeout_s: float = 5.0,
        cache: Optional[AudioCache] = None,
    ) -> None:
        self._host = host
        self._timeout = aiohttp.ClientTimeout(total=timeout_s, connect=connect_timeout_s)
        self._cache = cache
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def voice_key(self) -> str:
        """Cache discriminator for the voice this tier speaks with."""
        return ""

    def _session_headers(self) -> dict[str, str]:
        return {}

    @abc.abstractmethod
    async def _fetch_audio(self, session: aiohttp.ClientSession, text: str) -> bytes:
        """Return encoded audio for *text*; raise SpeechTierFailure on errors."""
        ...

    async def warm_up(self) -> None:
        """Create persistent HTTP session."""
        if self._session is None or self._session.closed:
            conn = aiohttp.TCPConnector(ssl=_make_ssl_context())
            self._session = aiohttp.ClientSession(
                connector=conn,
                headers=self._session_headers(),
                timeout=self._timeout,
            )
        logger.debug("%s session ready", self.name)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def attempt(self, request: SpeechRequest, events: TierEvents) -> None:
        events.started()
        audio = await self._load_audio(request.text)
        await self._play(audio, events)

    async def _load_audio(self, text: str) -> bytes:
        if self._cache is not None:
            cached = await self._cache.get(self.name, self.voice_key, text)
            if cached is not None:
                logger.debug("%s: cache hit for %.40s", self.name, text)
                return cached

        if self._session is None or self._session.closed:
            await self.warm_up()

        try:
            audio = await self._fetch_audio(self._session, text)
        except aiohttp.ClientError as e:
            raise SpeechTierFailure(f"{self.name} request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise SpeechTierFailure(f"{self.name} request timed out") from e

        if not audio:
            raise SpeechTierFailure(f"{self.name} returned no audio")

        if self._cache is not None:
            await self._cache.put(self.name, self.voice_key, text, audio)
        return audio

    async def _play(self, audio: bytes, events: TierEvents) -> None:
        fd, path = tempfile.mkstemp(prefix="spanish-cards-", suffix=self.audio_suffix)
        released = False

        def release() -> None:
            nonlocal released
            if released:
                return
            released = True
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(audio)
        except BaseException:
            release()
            raise

        def on_end() -> None:
            release()
            events.completed()

        def on_error(reason: str = "playback error") -> None:
            release()
            events.failed(f"{self.name} playback failed: {reason}")

        try:
            await self._host.play_audio(path, on_end=on_end, on_error=on_error)
        except PlaybackError as e:
            release()
            raise SpeechTierFailure(f"{self.name} playback rejected: {e}") from e
        except BaseException:
            release()
            raise
