from __future__ import annotations

from typing import Dict, Optional, Sequence

from album_edge.cache.interfaces import CacheStore
from album_edge.cache.snapshot import CacheEntry
from album_edge.errors import QuotaExceededError, StorageUnavailableError


class InMemoryCacheStore(CacheStore):
    """
    Process-local cache store.

    Used for tests and for ephemeral runs where nothing should touch the disk.
    """

    def __init__(self, *, enabled: bool = True, max_bytes: int = 0) -> None:
        self._enabled = enabled
        self._max_bytes = max_bytes
        self._generations: Dict[str, Dict[str, CacheEntry]] = {}

    def _check_enabled(self) -> None:
        if not self._enabled:
            raise StorageUnavailableError("Cache storage is disabled.")

    def _usage_bytes(self) -> int:
        return sum(entry.size_bytes for entries in self._generations.values() for entry in entries.values())

    async def generation_names(self) -> Sequence[str]:
        self._check_enabled()
        return list(self._generations)

    async def create_generation(self, name: str) -> None:
        self._check_enabled()
        self._generations.setdefault(name, {})

    async def delete_generation(self, name: str) -> bool:
        self._check_enabled()
        return self._generations.pop(name, None) is not None

    async def get(self, generation: str, key: str) -> Optional[CacheEntry]:
        self._check_enabled()
        return self._generations.get(generation, {}).get(key)

    async def put(self, generation: str, entry: CacheEntry) -> None:
        self._check_enabled()
        entries = self._generations.setdefault(generation, {})
        previous = entries.get(entry.key)
        if self._max_bytes:
            projected = self._usage_bytes() - (previous.size_bytes if previous else 0) + entry.size_bytes
            if projected > self._max_bytes:
                raise QuotaExceededError(
                    f"Cache quota exceeded. generation={generation} key={entry.key} "
                    f"projected={projected} max_bytes={self._max_bytes}"
                )
        # Overwrites move the key to the end so keys() reflects insertion recency.
        entries.pop(entry.key, None)
        entries[entry.key] = entry

    async def delete(self, generation: str, key: str) -> bool:
        self._check_enabled()
        return self._generations.get(generation, {}).pop(key, None) is not None

    async def keys(self, generation: str) -> Sequence[str]:
        self._check_enabled()
        return list(self._generations.get(generation, {}))
