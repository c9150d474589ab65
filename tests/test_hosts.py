from __future__ import annotations

import asyncio
import os
import stat
import sys

import pytest

from spanish_cards.speech.base import (
    PlaybackError,
    SpeechHandle,
    SpeechRequest,
    SpeechState,
    TierEvents,
    Utterance,
    VoiceDescriptor,
)
from spanish_cards.speech.hosts import (
    CommandLineHost,
    NullSynthesisHost,
    espeak_arguments,
    parse_espeak_voices,
)
from spanish_cards.speech.local import LocalSynthesisProvider
from spanish_cards.speech.orchestrator import SpeechConfig, SpeechOrchestrator
from spanish_cards.speech.preferences import InMemoryPreferenceStore

ESPEAK_VOICES = """\
Pty Language       Age/Gender VoiceName          File                 Other Languages
 5  es              --/M      Spanish_(Spain)    roa/es
 5  es-419          --/M      Spanish_(Latin_America) roa/es-419

"""

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script engine")

# lists no voices, then speaks until killed
SLOW_ENGINE = "case \"$1\" in --voices*) exit 0;; esac\nexec sleep 30"


def _fake_engine(tmp_path, body: str) -> str:
    path = tmp_path / "fake-espeak"
    path.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return str(path)


class _Callbacks:
    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.finished = asyncio.Event()
        self.ended = False
        self.errors: list[str] = []

    def on_start(self) -> None:
        self.started.set()

    def on_end(self) -> None:
        self.ended = True
        self.finished.set()

    def on_error(self, reason: str) -> None:
        self.errors.append(reason)
        self.finished.set()


def test_parse_espeak_voices():
    voices = parse_espeak_voices(ESPEAK_VOICES)
    assert voices == [
        VoiceDescriptor(name="Spanish (Spain)", language_tag="es"),
        VoiceDescriptor(name="Spanish (Latin America)", language_tag="es-419"),
    ]


def test_parse_espeak_voices_empty():
    assert parse_espeak_voices("") == []


def test_espeak_arguments_defaults():
    args = espeak_arguments(Utterance(text="hola", language_tag="es-ES", rate=0.7))
    assert args == ["-v", "es-ES", "-s", "122", "-p", "50", "-a", "100", "hola"]


def test_espeak_arguments_voice_and_clamping():
    utterance = Utterance(
        text="adiós",
        language_tag="es-ES",
        voice=VoiceDescriptor("Spanish (Spain)", "es"),
        rate=0.1,
        pitch=5.0,
        volume=0.5,
    )
    assert espeak_arguments(utterance) == ["-v", "es", "-s", "80", "-p", "99", "-a", "50", "adiós"]


class TestNullSynthesisHost:
    def test_no_capabilities(self) -> None:
        host = NullSynthesisHost()
        assert not host.supports_local_synthesis
        assert asyncio.run(host.list_voices()) == []
        with pytest.raises(PlaybackError):
            host.speak(Utterance("hola", "es-ES"), on_start=lambda: None, on_end=lambda: None, on_error=lambda r: None)

    def test_play_rejected(self) -> None:
        async def _inner() -> None:
            await NullSynthesisHost().play_audio("x.mp3", on_end=lambda: None, on_error=lambda r: None)

        with pytest.raises(PlaybackError):
            asyncio.run(_inner())


class TestCommandLineHost:
    def test_nothing_detected(self) -> None:
        host = CommandLineHost(detect=False)
        assert not host.supports_local_synthesis
        assert asyncio.run(host.list_voices()) == []

        async def _inner() -> None:
            await host.play_audio("x.mp3", on_end=lambda: None, on_error=lambda r: None)

        with pytest.raises(PlaybackError, match="no audio player"):
            asyncio.run(_inner())

    def test_play_audio_success(self, tmp_path) -> None:
        audio = tmp_path / "a.mp3"
        audio.write_bytes(b"ID3")
        host = CommandLineHost(player=[sys.executable, "-c", "pass"], detect=False)
        cb = _Callbacks()

        async def _inner() -> None:
            await host.play_audio(str(audio), on_end=cb.on_end, on_error=cb.on_error)
            await asyncio.wait_for(cb.finished.wait(), 10)

        asyncio.run(_inner())
        assert cb.ended
        assert cb.errors == []

    def test_play_audio_player_failure(self, tmp_path) -> None:
        host = CommandLineHost(player=[sys.executable, "-c", "import sys; sys.exit(3)"], detect=False)
        cb = _Callbacks()

        async def _inner() -> None:
            await host.play_audio(str(tmp_path / "a.mp3"), on_end=cb.on_end, on_error=cb.on_error)
            await asyncio.wait_for(cb.finished.wait(), 10)

        asyncio.run(_inner())
        assert not cb.ended
        assert cb.errors == ["exit status 3"]

    def test_play_audio_missing_player(self, tmp_path) -> None:
        host = CommandLineHost(player=[str(tmp_path / "no-such-player")], detect=False)

        async def _inner() -> None:
            await host.play_audio("x.mp3", on_end=lambda: None, on_error=lambda r: None)

        with pytest.raises(PlaybackError, match="could not start"):
            asyncio.run(_inner())

    @posix_only
    def test_list_voices_from_engine(self, tmp_path) -> None:
        engine = _fake_engine(tmp_path, "printf '%s\\n' 'Pty Language Age/Gender VoiceName File' ' 5  es-419  --/M  Spanish_(Latin_America)  roa/es-419'")
        host = CommandLineHost(speech_engine=engine, detect=False)
        assert host.supports_local_synthesis
        assert asyncio.run(host.list_voices()) == [VoiceDescriptor("Spanish (Latin America)", "es-419")]

    @posix_only
    def test_speak_runs_engine(self, tmp_path) -> None:
        host = CommandLineHost(speech_engine=_fake_engine(tmp_path, "exit 0"), detect=False)
        cb = _Callbacks()

        async def _inner() -> None:
            host.speak(Utterance("hola", "es-ES"), on_start=cb.on_start, on_end=cb.on_end, on_error=cb.on_error)
            await asyncio.wait_for(cb.finished.wait(), 10)

        asyncio.run(_inner())
        assert cb.started.is_set()
        assert cb.ended
        assert cb.errors == []

    @posix_only
    def test_cancel_interrupts_utterance(self, tmp_path) -> None:
        host = CommandLineHost(speech_engine=_fake_engine(tmp_path, "exec sleep 30"), detect=False)
        cb = _Callbacks()

        async def _inner() -> None:
            host.speak(Utterance("hola", "es-ES"), on_start=cb.on_start, on_end=cb.on_end, on_error=cb.on_error)
            await asyncio.wait_for(cb.started.wait(), 10)
            host.cancel()
            await asyncio.wait_for(cb.finished.wait(), 10)

        asyncio.run(_inner())
        assert not cb.ended
        assert cb.errors == ["interrupted"]

    @posix_only
    def test_list_voices_engine_failure(self, tmp_path) -> None:
        host = CommandLineHost(speech_engine=_fake_engine(tmp_path, "exit 1"), detect=False)
        assert asyncio.run(host.list_voices()) == []

    @posix_only
    def test_list_voices_queried_once(self, tmp_path) -> None:
        calls = tmp_path / "calls"
        engine = _fake_engine(
            tmp_path,
            f"echo x >> '{calls}'\n"
            "printf '%s\\n' 'Pty Language Age/Gender VoiceName File' ' 5  es  --/M  Spanish_(Spain)  roa/es'",
        )
        host = CommandLineHost(speech_engine=engine, detect=False)

        async def _inner():
            return await asyncio.gather(host.list_voices(), host.list_voices())

        first, second = asyncio.run(_inner())
        assert first == second == [VoiceDescriptor("Spanish (Spain)", "es")]
        assert calls.read_text().count("x") == 1

    @posix_only
    def test_cancel_before_engine_starts(self, tmp_path) -> None:
        host = CommandLineHost(speech_engine=_fake_engine(tmp_path, "exec sleep 30"), detect=False)
        cb = _Callbacks()

        async def _inner() -> None:
            token = host.speak(Utterance("hola", "es-ES"), on_start=cb.on_start, on_end=cb.on_end, on_error=cb.on_error)
            host.cancel(token)
            await asyncio.wait_for(cb.finished.wait(), 10)
            await asyncio.sleep(0.05)

        asyncio.run(_inner())
        assert not cb.started.is_set()
        assert not cb.ended
        assert cb.errors == ["interrupted"]

    @posix_only
    def test_cancel_with_stale_token_is_ignored(self, tmp_path) -> None:
        host = CommandLineHost(speech_engine=_fake_engine(tmp_path, SLOW_ENGINE), detect=False)
        old, new = _Callbacks(), _Callbacks()

        async def _inner() -> bool:
            stale = host.speak(Utterance("uno", "es-ES"), on_start=old.on_start, on_end=old.on_end, on_error=old.on_error)
            host.cancel(stale)
            current = host.speak(Utterance("dos", "es-ES"), on_start=new.on_start, on_end=new.on_end, on_error=new.on_error)
            await asyncio.wait_for(new.started.wait(), 10)
            host.cancel(stale)
            await asyncio.sleep(0.1)
            still_running = not new.finished.is_set()
            host.cancel(current)
            await asyncio.wait_for(new.finished.wait(), 10)
            return still_running

        assert asyncio.run(_inner()) is True
        assert old.errors == ["interrupted"]
        assert new.errors == ["interrupted"]


def _local_orchestrator(host: CommandLineHost) -> tuple[SpeechOrchestrator, LocalSynthesisProvider]:
    store = InMemoryPreferenceStore()
    local = LocalSynthesisProvider(host=host, preference_store=store)
    config = SpeechConfig(credential=None, preference_store=store, synthesis_host=host)
    return SpeechOrchestrator(config, providers=[local]), local


@posix_only
class TestCommandLineLocalTier:
    def test_back_to_back_requests(self, tmp_path) -> None:
        host = CommandLineHost(speech_engine=_fake_engine(tmp_path, "exit 0"), detect=False)

        async def _inner():
            orch, _ = _local_orchestrator(host)
            h1 = await orch.speak_text("uno")
            h2 = await orch.speak_text("dos")
            return await asyncio.wait_for(asyncio.gather(h1.wait(), h2.wait()), 10)

        r1, r2 = asyncio.run(_inner())
        assert r1.state is SpeechState.FAILED
        assert "interrupted" in r1.reason
        assert r2.state is SpeechState.COMPLETED
        assert r2.provider == "local"

    def test_superseded_handle_cancel_is_noop(self, tmp_path) -> None:
        host = CommandLineHost(speech_engine=_fake_engine(tmp_path, SLOW_ENGINE), detect=False)

        async def _inner():
            orch, _ = _local_orchestrator(host)
            h1 = await orch.speak_text("uno")
            started = asyncio.Event()
            h2 = await orch.speak_text("dos", on_start=started.set)
            await asyncio.wait_for(h1.wait(), 10)
            await asyncio.wait_for(started.wait(), 10)
            stale_cancel = h1.cancel()
            await asyncio.sleep(0.1)
            state = h2.state
            assert h2.cancel() is True
            return stale_cancel, state, await asyncio.wait_for(h2.wait(), 10)

        stale_cancel, state, r2 = asyncio.run(_inner())
        assert stale_cancel is False
        assert state is SpeechState.STARTED
        assert r2.state is SpeechState.FAILED
        assert r2.reason == "cancelled"

    def test_interrupted_handle_cancel_leaves_newer_utterance(self, tmp_path) -> None:
        host = CommandLineHost(speech_engine=_fake_engine(tmp_path, SLOW_ENGINE), detect=False)
        first_failures: list[str] = []
        second_failures: list[str] = []

        async def _inner():
            _, local = _local_orchestrator(host)
            h1 = SpeechHandle(SpeechRequest(text="uno"))
            await local.attempt(h1.request, TierEvents(h1, local.name, on_failure=first_failures.append))
            started = asyncio.Event()
            h2 = SpeechHandle(SpeechRequest(text="dos", on_start=started.set))
            await local.attempt(h2.request, TierEvents(h2, local.name, on_failure=second_failures.append))
            # h1 was interrupted but nobody resolved it, so its canceller is still attached
            await asyncio.wait_for(started.wait(), 10)
            cancelled = h1.cancel()
            await asyncio.sleep(0.1)
            outcome = (cancelled, h2.state, list(second_failures))
            h2.cancel()
            return outcome

        cancelled, h2_state, failures_before_cleanup = asyncio.run(_inner())
        assert first_failures == ["interrupted"]
        assert cancelled is True
        assert h2_state is SpeechState.STARTED
        assert failures_before_cleanup == []
