from __future__ import annotations

from typing import Optional, Sequence

from album_edge.cache.snapshot import CacheEntry


class CacheStore:
    """
    Backend contract for named cache generations.

    Every method may raise ``CacheStorageError`` (or ``OSError``); callers decide
    whether a failure is fatal. Keys are already-normalized URLs.
    """

    async def generation_names(self) -> Sequence[str]:
        raise NotImplementedError

    async def create_generation(self, name: str) -> None:
        """Create the generation if it does not exist. Idempotent."""
        raise NotImplementedError

    async def delete_generation(self, name: str) -> bool:
        """Delete the generation and all of its entries. Returns False when it did not exist."""
        raise NotImplementedError

    async def get(self, generation: str, key: str) -> Optional[CacheEntry]:
        raise NotImplementedError

    async def put(self, generation: str, entry: CacheEntry) -> None:
        """Store ``entry``, replacing any entry with the same key."""
        raise NotImplementedError

    async def delete(self, generation: str, key: str) -> bool:
        raise NotImplementedError

    async def keys(self, generation: str) -> Sequence[str]:
        """Keys of the generation in insertion order."""
        raise NotImplementedError
