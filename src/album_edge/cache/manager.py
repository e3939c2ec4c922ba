from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from album_edge.cache.generations import LOOKUP_ORDER, CacheFamily, GenerationId, GenerationNaming
from album_edge.cache.interfaces import CacheStore
from album_edge.cache.snapshot import CacheEntry
from album_edge.core.clock import format_rfc3339, utc_now
from album_edge.core.models import EdgeRequest, EdgeResponse
from album_edge.core.urls import normalize_url
from album_edge.errors import CacheStorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CacheHandle:
    generation: GenerationId

    @property
    def name(self) -> str:
        return self.generation.name

    @property
    def family(self) -> CacheFamily:
        return self.generation.family


def _key_of(request: EdgeRequest | str, *, ignore_search: bool = False) -> str:
    url = request if isinstance(request, str) else request.url
    return normalize_url(url, ignore_search=ignore_search)


class CacheGenerationManager:
    """
    Owns the versioned cache generations of one build.

    Storage failures never escape this class: reads degrade to a miss, writes are
    logged and dropped, so callers can always fall through to the network.
    """

    def __init__(self, store: CacheStore, naming: GenerationNaming) -> None:
        self._store = store
        self._naming = naming
        self._opened: set[str] = set()

    @property
    def naming(self) -> GenerationNaming:
        return self._naming

    @property
    def store(self) -> CacheStore:
        return self._store

    def handle_for(self, family: CacheFamily) -> CacheHandle:
        return CacheHandle(generation=self._naming.generation(family))

    async def open(self, family: CacheFamily) -> CacheHandle:
        handle = self.handle_for(family)
        if handle.name in self._opened:
            return handle
        try:
            await self._store.create_generation(handle.name)
            self._opened.add(handle.name)
        except (CacheStorageError, OSError) as e:
            logger.warning("Failed to open cache generation. generation=%s error=%s", handle.name, e)
        return handle

    async def match(
        self,
        request: EdgeRequest | str,
        handle: Optional[CacheHandle] = None,
        *,
        ignore_search: bool = False,
    ) -> Optional[EdgeResponse]:
        entry = await self.match_entry(request, handle, ignore_search=ignore_search)
        return entry.response if entry else None

    async def match_entry(
        self,
        request: EdgeRequest | str,
        handle: Optional[CacheHandle] = None,
        *,
        ignore_search: bool = False,
    ) -> Optional[CacheEntry]:
        key = _key_of(request)
        handles = [handle] if handle is not None else [self.handle_for(f) for f in LOOKUP_ORDER]
        for candidate in handles:
            entry = await self._get(candidate, key)
            if entry is not None:
                return entry
        if not ignore_search:
            return None

        # Stored keys keep their query, so a query-insensitive lookup has to scan.
        bare_key = _key_of(request, ignore_search=True)
        for candidate in handles:
            for stored_key in await self.keys(candidate):
                if normalize_url(stored_key, ignore_search=True) != bare_key:
                    continue
                entry = await self._get(candidate, stored_key)
                if entry is not None:
                    return entry
        return None

    async def match_in(
        self,
        request: EdgeRequest | str,
        families: Sequence[CacheFamily],
    ) -> Optional[CacheEntry]:
        key = _key_of(request)
        for family in families:
            entry = await self._get(self.handle_for(family), key)
            if entry is not None:
                return entry
        return None

    async def _get(self, handle: CacheHandle, key: str) -> Optional[CacheEntry]:
        try:
            return await self._store.get(handle.name, key)
        except (CacheStorageError, OSError) as e:
            logger.warning("Cache read failed, treating as miss. generation=%s key=%s error=%s", handle.name, key, e)
            return None

    async def put(self, handle: CacheHandle, request: EdgeRequest | str, response: EdgeResponse) -> bool:
        key = _key_of(request)
        entry = CacheEntry(key=key, response=response, stored_at=format_rfc3339(utc_now()))
        try:
            if handle.name not in self._opened:
                await self._store.create_generation(handle.name)
                self._opened.add(handle.name)
            await self._store.put(handle.name, entry)
        except (CacheStorageError, OSError) as e:
            logger.warning("Cache write dropped. generation=%s key=%s error=%s", handle.name, key, e)
            return False
        logger.debug("Cache entry stored. generation=%s key=%s size=%d", handle.name, key, entry.size_bytes)
        return True

    async def delete(self, handle: CacheHandle, request: EdgeRequest | str) -> bool:
        key = _key_of(request)
        try:
            return await self._store.delete(handle.name, key)
        except (CacheStorageError, OSError) as e:
            logger.warning("Cache delete failed. generation=%s key=%s error=%s", handle.name, key, e)
            return False

    async def keys(self, handle: CacheHandle) -> Sequence[str]:
        try:
            return await self._store.keys(handle.name)
        except (CacheStorageError, OSError) as e:
            logger.warning("Cache key listing failed. generation=%s error=%s", handle.name, e)
            return []

    async def generation_names(self) -> Sequence[str]:
        try:
            return await self._store.generation_names()
        except (CacheStorageError, OSError) as e:
            logger.warning("Cache generation listing failed. error=%s", e)
            return []

    async def delete_generation(self, name: str) -> bool:
        self._opened.discard(name)
        try:
            return await self._store.delete_generation(name)
        except (CacheStorageError, OSError) as e:
            logger.warning("Failed to delete cache generation. generation=%s error=%s", name, e)
            return False

    async def reconcile(self, version: Optional[str] = None) -> list[str]:
        """
        Delete every generation that is not live for ``version``.

        Older versions of versioned families and unrecognized names are removed.
        The stable offline-download and meta generations are kept.
        """
        if version is not None and version != self._naming.version:
            self._naming = GenerationNaming(
                version=version,
                offline_name=self._naming.offline_name,
                meta_name=self._naming.meta_name,
            )
        existing = await self.generation_names()
        deleted: list[str] = []
        for name in self._naming.stale(existing):
            family = self._naming.family_of(name)
            if await self.delete_generation(name):
                deleted.append(name)
                logger.info(
                    "Deleted stale cache generation. generation=%s family=%s",
                    name,
                    family.value if family else "unrecognized",
                )
        return deleted
