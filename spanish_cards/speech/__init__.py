"""
Spanish speech output with provider fallback.

Usage:
    from spanish_cards.speech import create_speech_orchestrator, CommandLineHost
    orchestrator = create_speech_orchestrator(cfg, host=CommandLineHost())

    handle = await orchestrator.speak_text("buenos días")
    await handle.wait()
"""
from .base import (
    PlaybackError,
    SpeechExhaustion,
    SpeechHandle,
    SpeechProvider,
    SpeechRequest,
    SpeechResult,
    SpeechState,
    SpeechTierFailure,
    SynthesisHost,
    Utterance,
    VoiceDescriptor,
)
from .cache import AudioCache
from .hosts import CommandLineHost, NullSynthesisHost
from .orchestrator import SpeechConfig, SpeechOrchestrator, create_speech_orchestrator
from .preferences import (
    InMemoryPreferenceStore,
    JsonFilePreferenceStore,
    KeyValueStore,
)
from .voices import best_spanish_voice, select_voice, spanish_voices

__all__ = [
    "PlaybackError",
    "SpeechExhaustion",
    "SpeechHandle",
    "SpeechProvider",
    "SpeechRequest",
    "SpeechResult",
    "SpeechState",
    "SpeechTierFailure",
    "SynthesisHost",
    "Utterance",
    "VoiceDescriptor",
    "AudioCache",
    "CommandLineHost",
    "NullSynthesisHost",
    "SpeechConfig",
    "SpeechOrchestrator",
    "create_speech_orchestrator",
    "InMemoryPreferenceStore",
    "JsonFilePreferenceStore",
    "KeyValueStore",
    "best_spanish_voice",
    "select_voice",
    "spanish_voices",
]
