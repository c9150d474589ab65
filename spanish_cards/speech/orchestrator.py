"""
Speech orchestrator with a provider fallback chain.

Tries each provider in order so a quiz word is always spoken by the best
available mechanism:

  Premium (ElevenLabs, needs key) → free translate TTS → local synthesis

Usage:
    orchestrator = create_speech_orchestrator(cfg, host=CommandLineHost())
    await orchestrator.warm_up()
    handle = await orchestrator.speak_text("hola", on_end=lambda: ...)
    result = await handle.wait()

speak_text() returns as soon as one tier has initiated playback (or all
tiers failed) and never raises. Failures surface only through ``on_error``
and the returned SpeechHandle.
"""
from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .base import (
    DEFAULT_PITCH,
    DEFAULT_RATE,
    DEFAULT_VOLUME,
    SpeechExhaustion,
    SpeechHandle,
    SpeechProvider,
    SpeechRequest,
    SpeechTierFailure,
    SynthesisHost,
    TierEvents,
)
from .cache import AudioCache
from .elevenlabs import ElevenLabsProvider
from .local import LocalSynthesisProvider
from .preferences import (
    JsonFilePreferenceStore,
    KeyValueStore,
    get_preferred_voice_name,
    set_preferred_voice_name,
)
from .translate_tts import TranslateTTSProvider

logger = logging.getLogger(__name__)


@dataclass
class SpeechConfig:
    """Explicit dependencies of the orchestrator.

    Attributes:
        credential: ElevenLabs API key; None disables the premium tier.
        preference_store: Where the preferred local voice name lives.
        synthesis_host: Playback and local synthesis capability.
    """
    credential: Optional[str]
    preference_store: KeyValueStore
    synthesis_host: SynthesisHost
    elevenlabs_voice_id: str = "pNInz6obpgDQGcFmaJgB"
    elevenlabs_model: str = "eleven_multilingual_v2"
    http_timeout_s: float = 10.0
    http_connect_timeout_s: float = 5.0
    rate: float = DEFAULT_RATE
    pitch: float = DEFAULT_PITCH
    volume: float = DEFAULT_VOLUME
    cache: Optional[AudioCache] = field(default=None)


def build_default_providers(config: SpeechConfig) -> list[SpeechProvider]:
    host = config.synthesis_host
    return [
        ElevenLabsProvider(
            api_key=config.credential,
            host=host,
            voice_id=config.elevenlabs_voice_id,
            model=config.elevenlabs_model,
            timeout_s=config.http_timeout_s,
            connect_timeout_s=config.http_connect_timeout_s,
            cache=config.cache,
        ),
        TranslateTTSProvider(
            host=host,
            timeout_s=config.http_timeout_s,
            connect_timeout_s=config.http_connect_timeout_s,
            cache=config.cache,
        ),
        LocalSynthesisProvider(host=host, preference_store=config.preference_store),
    ]


class SpeechOrchestrator:
    """Walks the provider chain for every speech request.

    A provider that raises during attempt() is skipped. A network provider
    whose playback fails after it started hands over to the next provider in
    the background. Only exhaustion of the whole chain is reported, once,
    through on_error.
    """

    def __init__(
        self,
        config: SpeechConfig,
        providers: Optional[Sequence[SpeechProvider]] = None,
    ) -> None:
        self._config = config
        self._providers = list(providers) if providers is not None else build_default_providers(config)
        if not self._providers:
            raise ValueError("At least one speech provider is required")
        self._background: set[asyncio.Task] = set()

    @property
    def name(self) -> str:
        names = [p.name for p in self._providers]
        return f"speech({' → '.join(names)})"

    @property
    def providers(self) -> list[SpeechProvider]:
        return list(self._providers)

    # ── availability checks (for callers deciding whether to show speech UI) ──

    def is_local_synthesis_supported(self) -> bool:
        return self._config.synthesis_host.supports_local_synthesis

    def has_premium_credential(self) -> bool:
        return bool(self._config.credential)

    def is_anything_available(self) -> bool:
        # Optimistic: the free tier is assumed reachable. Not a guarantee.
        return True

    # ── voice preference ──

    def get_preferred_voice_name(self) -> Optional[str]:
        return get_preferred_voice_name(self._config.preference_store)

    def set_preferred_voice_name(self, name: str) -> None:
        set_preferred_voice_name(self._config.preference_store, name)

    # ── lifecycle ──

    async def warm_up(self) -> None:
        for provider in self._providers:
            if not provider.is_available():
                continue
            try:
                await provider.warm_up()
            except Exception:
                logger.warning("Failed to warm up %s", provider.name, exc_info=True)

    async def close(self) -> None:
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        for provider in self._providers:
            try:
                await provider.close()
            except Exception:
                logger.debug("Error closing %s", provider.name, exc_info=True)

    # ── speaking ──

    async def speak_text(
        self,
        text: str,
        *,
        rate: Optional[float] = None,
        pitch: Optional[float] = None,
        volume: Optional[float] = None,
        voice_name: Optional[str] = None,
        on_start: Optional[Callable[[], None]] = None,
        on_end: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> SpeechHandle:
        request = SpeechRequest(
            text=text,
            rate=self._config.rate if rate is None else rate,
            pitch=self._config.pitch if pitch is None else pitch,
            volume=self._config.volume if volume is None else volume,
            voice_name=voice_name,
            on_start=on_start,
            on_end=on_end,
            on_error=on_error,
        )
        return await self.speak(request)

    async def speak(self, request: SpeechRequest) -> SpeechHandle:
        handle = SpeechHandle(request)
        if not (request.text or "").strip():
            handle.mark_failed("nothing to speak")
            return handle
        try:
            await self._run_chain(request, handle, 0)
        except Exception as e:
            logger.exception("Speech orchestration error (text=%.40s)", request.text)
            handle.mark_failed(f"unexpected error: {e}")
        return handle

    async def _run_chain(
        self,
        request: SpeechRequest,
        handle: SpeechHandle,
        start: int,
        last_error: Optional[str] = None,
    ) -> None:
        """Try providers[start:] until one initiates playback."""
        for i in range(start, len(self._providers)):
            if handle.done:
                return
            provider = self._providers[i]
            if not provider.is_available():
                logger.debug("Speech %s unavailable, skipping", provider.name)
                continue

            events = TierEvents(
                handle,
                provider.name,
                on_failure=functools.partial(self._on_playback_failed, request, handle, i),
            )
            t0 = time.monotonic()
            try:
                await provider.attempt(request, events)
            except SpeechTierFailure as e:
                if events.has_failed:
                    return  # already handed over to the next provider
                last_error = str(e)
                logger.warning(
                    "Speech %s failed for '%.40s': %s — trying next",
                    provider.name, request.text, e,
                )
                continue
            except Exception as e:
                if events.has_failed:
                    return
                last_error = f"{provider.name}: {e}"
                logger.warning(
                    "Speech %s raised for '%.40s' — trying next",
                    provider.name, request.text, exc_info=True,
                )
                continue

            elapsed_ms = (time.monotonic() - t0) * 1000
            if i > 0:
                logger.info(
                    "Speech failover: %s initiated (primary %s unavailable or failed) "
                    "latency=%.0fms text=%.40s",
                    provider.name, self._providers[0].name, elapsed_ms, request.text,
                )
            else:
                logger.debug("Speech %s initiated in %.0fms", provider.name, elapsed_ms)
            return

        if handle.done:
            return
        reason = str(SpeechExhaustion(
            f"all speech providers failed (last error: {last_error})"
            if last_error else "no speech provider available"
        ))
        logger.error("All speech providers failed for '%.60s'. Last error: %s", request.text, last_error)
        handle.mark_failed(reason)

    def _on_playback_failed(
        self,
        request: SpeechRequest,
        handle: SpeechHandle,
        index: int,
        reason: str,
    ) -> None:
        """A provider reported failure after attempt(); continue the chain."""
        if handle.done:
            return
        logger.warning(
            "Speech %s playback failed for '%.40s': %s — trying next",
            self._providers[index].name, request.text, reason,
        )
        task = asyncio.ensure_future(self._continue_chain(request, handle, index + 1, reason))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _continue_chain(
        self,
        request: SpeechRequest,
        handle: SpeechHandle,
        start: int,
        last_error: str,
    ) -> None:
        try:
            await self._run_chain(request, handle, start, last_error)
        except asyncio.CancelledError:
            handle.mark_failed("cancelled")
            raise
        except Exception as e:
            logger.exception("Speech fallback error (text=%.40s)", request.text)
            handle.mark_failed(f"unexpected error: {e}")


def create_speech_orchestrator(
    cfg,
    *,
    host: SynthesisHost,
    preference_store: Optional[KeyValueStore] = None,
) -> SpeechOrchestrator:
    """Create the orchestrator from AppConfig.

    Reads these config fields:
      cfg.credential: ElevenLabs key or None
      cfg.elevenlabs_voice_id / cfg.elevenlabs_model
      cfg.http_timeout_s / cfg.http_connect_timeout_s
      cfg.speech_rate / cfg.speech_pitch / cfg.speech_volume
      cfg.speech_cache_enabled / cfg.speech_cache_max_entries / cfg.speech_cache_ttl_s
      cfg.preferences_file (when no preference_store is given)
    """
    if preference_store is None:
        preference_store = JsonFilePreferenceStore(cfg.preferences_file)

    cache = None
    if getattr(cfg, "speech_cache_enabled", False):
        cache = AudioCache(
            max_entries=cfg.speech_cache_max_entries,
            ttl_seconds=cfg.speech_cache_ttl_s,
        )

    speech_config = SpeechConfig(
        credential=cfg.credential,
        preference_store=preference_store,
        synthesis_host=host,
        elevenlabs_voice_id=cfg.elevenlabs_voice_id,
        elevenlabs_model=cfg.elevenlabs_model,
        http_timeout_s=cfg.http_timeout_s,
        http_connect_timeout_s=cfg.http_connect_timeout_s,
        rate=cfg.speech_rate,
        pitch=cfg.speech_pitch,
        volume=cfg.speech_volume,
        cache=cache,
    )
    orchestrator = SpeechOrchestrator(speech_config)
    logger.info("Speech pipeline: %s", orchestrator.name)
    return orchestrator
