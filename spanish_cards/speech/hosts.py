"""
Synthesis hosts.

NullSynthesisHost has no audio at all; every tier fails and speech requests
end in on_error. CommandLineHost drives external programs through asyncio
subprocesses:

  audio playback   ffplay / mpg123 / afplay
  local synthesis  espeak-ng / espeak

Programs are found on PATH at construction time; a missing player only
disables the network tiers, a missing speech engine only the local tier.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
from typing import Callable, Optional, Sequence

from .base import PlaybackError, SynthesisHost, Utterance, VoiceDescriptor

logger = logging.getLogger(__name__)

AUDIO_PLAYERS: tuple[tuple[str, ...], ...] = (
    ("ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"),
    ("mpg123", "-q"),
    ("afplay",),
)
SPEECH_ENGINES = ("espeak-ng", "espeak")

# espeak defaults: 175 words per minute, pitch 50 (0-99), amplitude 100 (0-200)
_ESPEAK_BASE_WPM = 175
_ESPEAK_BASE_PITCH = 50
_ESPEAK_BASE_AMPLITUDE = 100

VOICE_LIST_TIMEOUT_S = 5.0


class NullSynthesisHost(SynthesisHost):
    """A host without speakers (tests, headless runs)."""

    async def play_audio(
        self,
        path: str,
        *,
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        raise PlaybackError("no audio output available")

def find_audio_player() -> Optional[list[str]]:
    for argv in AUDIO_PLAYERS:
        exe = shutil.which(argv[0])
        if exe:
            return [exe, *argv[1:]]
    return None

def find_speech_engine() -> Optional[str]:
    for name in SPEECH_ENGINES:
        exe = shutil.which(name)
        if exe:
            return exe
    return None

def parse_espeak_voices(output: str) -> list[VoiceDescriptor]:
    """Parse ``espeak --voices`` output.

    Pty Language       Age/Gender VoiceName          File          Other Languages
     5  es              --/M      Spanish_(Spain)    roa/es
    """
    voices: list[VoiceDescriptor] = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 4:
            continue
        voices.append(VoiceDescriptor(name=parts[3].replace("_", " "), language_tag=parts[1]))
    return voices

def espeak_arguments(utterance: Utterance) -> list[str]:
    voice = utterance.voice.language_tag if utterance.voice else utterance.language_tag
    return [
        "-v", voice,
        "-s", str(max(int(_ESPEAK_BASE_WPM * utterance.rate), 80)),
        "-p", str(min(max(int(_ESPEAK_BASE_PITCH * utterance.pitch), 0), 99)),
        "-a", str(min(max(int(_ESPEAK_BASE_AMPLITUDE * utterance.volume), 0), 200)),
        utterance.text,
    ]

class _Utterance:
    """Bookkeeping for one local utterance; its outcome is reported once."""

    def __init__(
        self,
        on_start: Callable[[], None],
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        self.on_start = on_start
        self._on_end = on_end
        self._on_error = on_error
        self.finished = False
        self.task: Optional[asyncio.Task] = None

    def end(self) -> None:
        if not self.finished:
            self.finished = True
            self._on_end()

    def error(self, reason: str) -> None:
        if not self.finished:
            self.finished = True
            self._on_error(reason)


class CommandLineHost(SynthesisHost):
    def __init__(
        self,
        *,
        player: Optional[Sequence[str]] = None,
        speech_engine: Optional[str] = None,
        detect: bool = True,
    ) -> None:
        self._player = list(player) if player else (find_audio_player() if detect else None)
        self._engine = speech_engine or (find_speech_engine() if detect else None)
        self._voices: Optional[list[VoiceDescriptor]] = None
        self._voices_lock = asyncio.Lock()
        self._utterance: Optional[_Utterance] = None
        self._playbacks: set[asyncio.Task] = set()
        logger.info(
            "Command-line host: player=%s speech_engine=%s",
            self._player[0] if self._player else "(none)",
            self._engine or "(none)",
        )

    @property
    def supports_local_synthesis(self) -> bool:
        return self._engine is not None

    async def list_voices(self) -> list[VoiceDescriptor]:
        if self._engine is None:
            return []
        async with self._voices_lock:
            if self._voices is None:
                self._voices = parse_espeak_voices(await self._query_voices(self._engine))
        return list(self._voices)

    @staticmethod
    async def _query_voices(engine: str) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                engine, "--voices=es",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("Could not list %s voices: %s", engine, e)
            return ""
        try:
            out, _ = await asyncio.wait_for(proc.communicate(), timeout=VOICE_LIST_TIMEOUT_S)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("Could not list %s voices: timed out after %.0fs", engine, VOICE_LIST_TIMEOUT_S)
            return ""
        if proc.returncode != 0:
            logger.warning("Could not list %s voices: exit status %d", engine, proc.returncode)
            return ""
        return out.decode("utf-8", errors="replace")

    def speak(
        self,
        utterance: Utterance,
        *,
        on_start: Callable[[], None],
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> _Utterance:
        if self._engine is None:
            raise PlaybackError("no speech engine installed")
        argv = [self._engine, *espeak_arguments(utterance)]
        record = _Utterance(on_start, on_end, on_error)
        record.task = asyncio.ensure_future(self._run(argv, record))
        self._utterance = record
        return record

    def cancel(self, token: Optional[object] = None) -> None:
        record = self._utterance
        if record is None or (token is not None and token is not record):
            return
        self._utterance = None
        # reported here as well: a task cancelled before it first runs never
        # reaches its own except clauses
        record.error("interrupted")
        if record.task is not None and not record.task.done():
            record.task.cancel()

    async def play_audio(
        self,
        path: str,
        *,
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        if not self._player:
            raise PlaybackError("no audio player installed")
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._player, path,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise PlaybackError(f"could not start {self._player[0]}: {e}") from e

        task = asyncio.ensure_future(self._wait(proc, on_end, on_error))
        self._playbacks.add(task)
        task.add_done_callback(self._playbacks.discard)

    async def _run(self, argv: list[str], record: _Utterance) -> None:
        try:
            try:
                proc = await asyncio.create_subprocess_exec(
                    *argv,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
            except OSError as e:
                record.error(f"could not start {argv[0]}: {e}")
                return
            except asyncio.CancelledError:
                record.error("interrupted")
                raise
            record.on_start()
            await self._wait(proc, record.end, record.error)
        finally:
            if self._utterance is record:
                self._utterance = None

    @staticmethod
    async def _wait(
        proc: asyncio.subprocess.Process,
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        try:
            code = await proc.wait()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.terminate()
            on_error("interrupted")
            raise
        if code == 0:
            on_end()
        else:
            on_error(f"exit status {code}")
