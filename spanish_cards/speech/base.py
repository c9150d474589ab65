"""
Speech provider interface and request lifecycle.

Every speech tier (ElevenLabs, translate TTS, local synthesis) implements
SpeechProvider. The orchestrator is provider-agnostic: it walks the ordered
provider list until one initiates playback.

Key design principles:
  1. Async — network I/O never blocks the event loop.
  2. Initiation, not completion — attempt() returns once audio has started
     (or was handed to the host); completion arrives through TierEvents.
  3. Exactly-once — a SpeechHandle fires on_start at most once and exactly
     one of on_end / on_error, whatever the number of tiers tried.
  4. Never fatal — speech failures never propagate to the caller.
"""
from __future__ import annotations

import abc
import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_RATE = 0.7  # slowed down for pronunciation practice
DEFAULT_PITCH = 1.0
DEFAULT_VOLUME = 1.0
DEFAULT_LANGUAGE_TAG = "es-ES"


class SpeechTierFailure(Exception):
    """A single tier could not produce speech. Triggers fallback."""


class SpeechExhaustion(Exception):
    """Every tier failed, or the host has no speech capability at all."""


class PlaybackError(Exception):
    """Raised by a SynthesisHost that rejects playback up front."""


class SpeechState(str, enum.Enum):
    PENDING = "pending"
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class VoiceDescriptor:
    """A voice exposed by the host's voice enumeration."""
    name: str
    language_tag: str


@dataclass(frozen=True)
class Utterance:
    """What the local tier asks the host to speak."""
    text: str
    language_tag: str
    voice: Optional[VoiceDescriptor] = None
    rate: float = DEFAULT_RATE
    pitch: float = DEFAULT_PITCH
    volume: float = DEFAULT_VOLUME


@dataclass
class SpeechRequest:
    text: str
    rate: float = DEFAULT_RATE
    pitch: float = DEFAULT_PITCH
    volume: float = DEFAULT_VOLUME
    voice_name: Optional[str] = None
    on_start: Optional[Callable[[], None]] = None
    on_end: Optional[Callable[[], None]] = None
    on_error: Optional[Callable[[str], None]] = None


@dataclass(frozen=True)
class SpeechResult:
    state: SpeechState
    provider: Optional[str] = None
    reason: Optional[str] = None


class SpeechHandle:
    """Tracks one speech request across every tier it passes through.

    Must be created inside a running event loop. ``wait()`` resolves with
    the terminal SpeechResult (COMPLETED or FAILED).
    """

    def __init__(self, request: SpeechRequest) -> None:
        self.request = request
        self.state = SpeechState.PENDING
        self.provider: Optional[str] = None
        self.reason: Optional[str] = None
        self._future: asyncio.Future[SpeechResult] = asyncio.get_running_loop().create_future()
        self._canceller: Optional[Callable[[], None]] = None

    @property
    def done(self) -> bool:
        return self.state in (SpeechState.COMPLETED, SpeechState.FAILED)

    def result(self) -> SpeechResult:
        return SpeechResult(state=self.state, provider=self.provider, reason=self.reason)

    async def wait(self) -> SpeechResult:
        return await asyncio.shield(self._future)

    def attach_canceller(self, canceller: Optional[Callable[[], None]]) -> None:
        self._canceller = canceller

    def cancel(self) -> bool:
        """Stop playback if the active tier supports it (local synthesis only)."""
        if self.done or self._canceller is None:
            return False
        canceller = self._canceller
        self.mark_failed("cancelled")
        canceller()
        return True

    def mark_started(self, provider: str) -> None:
        if self.state is not SpeechState.PENDING:
            return
        self.state = SpeechState.STARTED
        self.provider = provider
        self._fire(self.request.on_start)

    def mark_completed(self, provider: str) -> None:
        if self.done:
            return
        self.state = SpeechState.COMPLETED
        self.provider = provider
        self._canceller = None
        self._fire(self.request.on_end)
        self._resolve()

    def mark_failed(self, reason: str) -> None:
        if self.done:
            return
        self.state = SpeechState.FAILED
        self.reason = reason
        self._canceller = None
        self._fire(self.request.on_error, reason)
        self._resolve()

    def _resolve(self) -> None:
        if not self._future.done():
            self._future.set_result(self.result())

    def _fire(self, callback: Optional[Callable[..., None]], *args: object) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Speech callback raised (text=%.40s)", self.request.text)


class TierEvents:
    """Lifecycle sink handed to one provider for one attempt.

    ``failed`` only matters after attempt() returned (late playback errors);
    it forwards at most once.
    """

    def __init__(
        self,
        handle: SpeechHandle,
        provider: str,
        on_failure: Callable[[str], None],
    ) -> None:
        self._handle = handle
        self._provider = provider
        self._on_failure = on_failure
        self.has_failed = False

    def started(self) -> None:
        self._handle.mark_started(self._provider)

    def completed(self) -> None:
        self._handle.mark_completed(self._provider)

    def failed(self, reason: str = "playback error") -> None:
        if self.has_failed:
            return
        self.has_failed = True
        self._on_failure(reason)

    def attach_canceller(self, canceller: Callable[[], None]) -> None:
        """Let handle.cancel() stop the playback this attempt started."""
        self._handle.attach_canceller(canceller)


class SynthesisHost(abc.ABC):
    """Playback and synthesis capability of the surrounding environment.

    ``speak`` and ``cancel`` are synchronous like a browser speech engine:
    they schedule work and report progress through the callbacks. ``speak``
    returns a token naming the utterance; ``cancel(token)`` only stops that
    utterance, and is a no-op once it has ended or been replaced. Every
    utterance ends in exactly one of on_end / on_error, cancelled ones
    included.
    ``play_audio`` returns once playback has started and raises PlaybackError
    if it is rejected up front.
    """

    @property
    def supports_local_synthesis(self) -> bool:
        return False

    async def list_voices(self) -> list[VoiceDescriptor]:
        return []

    def speak(
        self,
        utterance: Utterance,
        *,
        on_start: Callable[[], None],
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> object:
        raise PlaybackError("local speech synthesis is not supported")

    def cancel(self, token: Optional[object] = None) -> None:
        """Stop the active local utterance (only if it is *token*, when given)."""

    @abc.abstractmethod
    async def play_audio(
        self,
        path: str,
        *,
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        ...


class SpeechProvider(abc.ABC):
    """One tier of the speech fallback chain."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Human-readable provider name (for logging)."""
        ...

    def is_available(self) -> bool:
        return True

    @abc.abstractmethod
    async def attempt(self, request: SpeechRequest, events: TierEvents) -> None:
        """Initiate speech for *request*.

        Returns once playback has been initiated. Raises SpeechTierFailure
        when this tier cannot speak; the orchestrator then tries the next.
        """
        ...

    async def warm_up(self) -> None:
        """Optional: open HTTP sessions before the first request."""

    async def close(self) -> None:
        """Release resources (HTTP sessions etc.)."""
