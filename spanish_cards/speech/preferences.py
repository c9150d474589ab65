"""Key-value persistence for the preferred local voice."""
from __future__ import annotations

import abc
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PREFERRED_VOICE_KEY = "spanish-cards-preferred-voice"


class KeyValueStore(abc.ABC):
    @abc.abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abc.abstractmethod
    def set(self, key: str, value: str) -> None:
        ...


class InMemoryPreferenceStore(KeyValueStore):
    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFilePreferenceStore(KeyValueStore):
    """Preferences kept in a small JSON object on disk.

    A missing or unreadable file reads as empty. Writes replace the file
    atomically.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable preferences file %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring preferences file %s: not a JSON object", self._path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".prefs-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self._path)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise


def get_preferred_voice_name(store: KeyValueStore) -> Optional[str]:
    return store.get(PREFERRED_VOICE_KEY) or None


def set_preferred_voice_name(store: KeyValueStore, name: str) -> None:
    name = (name or "").strip()
    if not name:
        raise ValueError("voice name must be a non-empty string")
    store.set(PREFERRED_VOICE_KEY, name)
    logger.info("Preferred voice set to %r", name)
