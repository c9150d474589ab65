"""
Audio cache for the network speech tiers.

A quiz replays the same short words over and over ("hola", "gracias", ...).
Keeping the encoded audio per provider + voice + text saves a network round
trip on every replay and, for the premium tier, API credits.

In-memory LRU with optional TTL; one cache may be shared by several
providers since the provider name is part of the key.
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedAudio:
    audio: bytes
    provider: str
    voice: str
    text: str
    cached_at: float  # monotonic clock


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    stores: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return (self.hits / total * 100.0) if total > 0 else 0.0


class AudioCache:
    """In-memory LRU cache for synthesized audio.

    Args:
        max_entries: Maximum number of cached phrases.
        max_bytes: Maximum total audio bytes in cache.
        ttl_seconds: Entry time-to-live (0 = infinite).
    """

    def __init__(
        self,
        *,
        max_entries: int = 200,
        max_bytes: int = 20 * 1024 * 1024,
        ttl_seconds: float = 3600.0,
    ) -> None:
        self._cache: OrderedDict[str, CachedAudio] = OrderedDict()
        self._max_entries = max(max_entries, 1)
        self._max_bytes = max(max_bytes, 1024)
        self._ttl = ttl_seconds
        self._total_bytes: int = 0
        self._lock = asyncio.Lock()
        self.stats = CacheStats()

    @staticmethod
    def _make_key(provider: str, voice: str, text: str) -> str:
        normalized = " ".join(text.lower().split())
        raw = f"{provider}::{voice}::{normalized}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:24]

    async def get(self, provider: str, voice: str, text: str) -> Optional[bytes]:
        """Look up cached audio. Returns None on miss."""
        key = self._make_key(provider, voice, text)
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self.stats.misses += 1
                return None

            if self._ttl > 0 and (time.monotonic() - entry.cached_at) > self._ttl:
                self._remove_entry(key)
                self.stats.misses += 1
                return None

            self._cache.move_to_end(key)
            self.stats.hits += 1
            return entry.audio

    async def put(self, provider: str, voice: str, text: str, audio: bytes) -> None:
        if not audio or len(audio) > self._max_bytes:
            return
        key = self._make_key(provider, voice, text)
        entry = CachedAudio(
            audio=audio,
            provider=provider,
            voice=voice,
            text=text,
            cached_at=time.monotonic(),
        )

        async with self._lock:
            if key in self._cache:
                self._remove_entry(key)

            while (
                len(self._cache) >= self._max_entries
                or self._total_bytes + len(audio) > self._max_bytes
            ) and self._cache:
                self._evict_oldest()

            self._cache[key] = entry
            self._total_bytes += len(audio)
            self.stats.stores += 1

    def _remove_entry(self, key: str) -> None:
        """Remove entry by key (caller holds lock)."""
        if key in self._cache:
            self._total_bytes -= len(self._cache[key].audio)
            del self._cache[key]

    def _evict_oldest(self) -> None:
        """Evict the least-recently-used entry (caller holds lock)."""
        if self._cache:
            _, evicted = self._cache.popitem(last=False)
            self._total_bytes -= len(evicted.audio)
            self.stats.evictions += 1

    @property
    def size(self) -> int:
        return len(self._cache)

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()
            self._total_bytes = 0
