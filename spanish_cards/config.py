from __future__ import annotations
from dataclasses import dataclass
import logging
import os
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_ELEVENLABS_VOICE_ID = "pNInz6obpgDQGcFmaJgB"
DEFAULT_ELEVENLABS_MODEL = "eleven_multilingual_v2"


def _env_int(key: str, default: int) -> int:
    v = os.getenv(key)
    if v is None or str(v).strip() == "":
        return default
    try:
        return int(v)
    except Exception as e:
        raise ValueError(f"{key} must be an int, got {v!r}") from e


def _env_float(key: str, default: float) -> float:
    v = os.getenv(key)
    if v is None or str(v).strip() == "":
        return default
    try:
        return float(v)
    except Exception as e:
        raise ValueError(f"{key} must be a float, got {v!r}") from e


def _env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    return str(v).strip().lower() in ("1", "true", "yes", "y", "on")


@dataclass(frozen=True)
class AppConfig:
    elevenlabs_api_key: str = ""
    elevenlabs_voice_id: str = DEFAULT_ELEVENLABS_VOICE_ID
    elevenlabs_model: str = DEFAULT_ELEVENLABS_MODEL
    http_timeout_s: float = 10.0
    http_connect_timeout_s: float = 5.0
    speech_rate: float = 0.7
    speech_pitch: float = 1.0
    speech_volume: float = 1.0
    speech_cache_enabled: bool = True
    speech_cache_max_entries: int = 200
    speech_cache_ttl_s: float = 3600.0
    preferences_file: str = ""
    vocabulary_file: str = "sample-vocabulary.json"
    question_count: int = 10

    @property
    def credential(self) -> str | None:
        """Tier A credential, or None when no key is configured."""
        return self.elevenlabs_api_key or None


def load_config(env_file: str | None = None) -> AppConfig:
    """Load config from .env + environment.

    Precedence: real environment wins over .env values.
    """
    if env_file:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    elevenlabs_api_key = os.getenv("ELEVENLABS_API_KEY", "").strip()
    elevenlabs_voice_id = os.getenv("ELEVENLABS_VOICE_ID", "").strip() or DEFAULT_ELEVENLABS_VOICE_ID
    elevenlabs_model = os.getenv("ELEVENLABS_MODEL", "").strip() or DEFAULT_ELEVENLABS_MODEL

    http_timeout_s = _env_float("SPEECH_HTTP_TIMEOUT_S", 10.0)
    http_connect_timeout_s = _env_float("SPEECH_HTTP_CONNECT_TIMEOUT_S", 5.0)
    if http_timeout_s <= 0:
        raise ValueError("SPEECH_HTTP_TIMEOUT_S must be positive")
    if http_connect_timeout_s > http_timeout_s:
        logger.warning(
            "SPEECH_HTTP_CONNECT_TIMEOUT_S=%.1f exceeds SPEECH_HTTP_TIMEOUT_S=%.1f; "
            "the total timeout will fire first.",
            http_connect_timeout_s,
            http_timeout_s,
        )

    speech_rate = _env_float("SPEECH_RATE", 0.7)
    speech_pitch = _env_float("SPEECH_PITCH", 1.0)
    speech_volume = _env_float("SPEECH_VOLUME", 1.0)
    if not 0.0 <= speech_volume <= 1.0:
        raise ValueError(f"SPEECH_VOLUME must be between 0 and 1, got {speech_volume}")

    speech_cache_enabled = _env_bool("SPEECH_CACHE_ENABLED", True)
    speech_cache_max_entries = _env_int("SPEECH_CACHE_MAX_ENTRIES", 200)
    speech_cache_ttl_s = _env_float("SPEECH_CACHE_TTL_S", 3600.0)

    preferences_file = os.getenv("PREFERENCES_FILE", "").strip().strip('"').strip("'")
    if not preferences_file:
        preferences_file = str(Path("~/.spanish_cards/preferences.json").expanduser())
    elif not os.path.isabs(preferences_file):
        preferences_file = str(Path(preferences_file).expanduser().resolve())

    vocabulary_file = os.getenv("VOCABULARY_FILE", "sample-vocabulary.json").strip() or "sample-vocabulary.json"
    question_count = _env_int("QUESTION_COUNT", 10)
    if question_count <= 0:
        raise ValueError(f"QUESTION_COUNT must be positive, got {question_count}")

    if elevenlabs_api_key:
        logger.info(
            "Premium speech enabled: voice_id=%s model=%s",
            elevenlabs_voice_id, elevenlabs_model,
        )
    else:
        logger.info("ELEVENLABS_API_KEY not set; speech starts at the free tier")

    return AppConfig(
        elevenlabs_api_key=elevenlabs_api_key,
        elevenlabs_voice_id=elevenlabs_voice_id,
        elevenlabs_model=elevenlabs_model,
        http_timeout_s=http_timeout_s,
        http_connect_timeout_s=http_connect_timeout_s,
        speech_rate=speech_rate,
        speech_pitch=speech_pitch,
        speech_volume=speech_volume,
        speech_cache_enabled=speech_cache_enabled,
        speech_cache_max_entries=speech_cache_max_entries,
        speech_cache_ttl_s=speech_cache_ttl_s,
        preferences_file=preferences_file,
        vocabulary_file=vocabulary_file,
        question_count=question_count,
    )
