from __future__ import annotations

import json
import logging
from typing import Iterable, Sequence

from album_edge.cache.generations import CacheFamily
from album_edge.cache.manager import CacheGenerationManager
from album_edge.core.clock import format_rfc3339, utc_now
from album_edge.core.models import EdgeResponse
from album_edge.core.urls import resolve_url

logger = logging.getLogger(__name__)

SchemaVersion = 1

RESOURCES_DOCUMENT = "__edge__/offline-resources.json"
PENDING_DOCUMENT = "__edge__/pending-retry.json"


def ordered_unique(urls: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for url in urls:
        if url in seen:
            continue
        seen.add(url)
        result.append(url)
    return result


class OfflineListStore:
    """
    Persists the Offline Resource List and the Pending Retry List.

    Both are JSON documents stored as entries of the stable meta generation, keyed
    by synthetic URLs under the app scope so they survive build upgrades.
    """

    def __init__(self, caches: CacheGenerationManager, scope_url: str) -> None:
        self._caches = caches
        self._resources_key = resolve_url(scope_url, RESOURCES_DOCUMENT)
        self._pending_key = resolve_url(scope_url, PENDING_DOCUMENT)

    async def _read(self, key: str) -> list[str]:
        handle = self._caches.handle_for(CacheFamily.META)
        response = await self._caches.match(key, handle)
        if response is None:
            return []
        try:
            payload = json.loads(response.body.decode("utf-8"))
            urls = payload.get("urls", [])
            if not isinstance(urls, list):
                raise ValueError("urls must be a list")
            return ordered_unique(str(url) for url in urls)
        except (UnicodeDecodeError, ValueError, AttributeError):
            logger.warning("Discarding unreadable offline list document. key=%s", key, exc_info=True)
            return []

    async def _write(self, key: str, urls: Sequence[str]) -> None:
        payload = {
            "schema_version": SchemaVersion,
            "updated_at": format_rfc3339(utc_now()),
            "urls": ordered_unique(urls),
        }
        body = json.dumps(payload, indent=2).encode("utf-8")
        response = EdgeResponse.build(200, body, headers={"Content-Type": "application/json"}, url=key)
        handle = await self._caches.open(CacheFamily.META)
        await self._caches.put(handle, key, response)

    async def load_resources(self) -> list[str]:
        return await self._read(self._resources_key)

    async def save_resources(self, urls: Sequence[str]) -> None:
        await self._write(self._resources_key, urls)

    async def merge_resources(self, urls: Sequence[str]) -> list[str]:
        merged = ordered_unique([*await self.load_resources(), *urls])
        await self.save_resources(merged)
        return merged

    async def load_pending(self) -> list[str]:
        return await self._read(self._pending_key)

    async def save_pending(self, urls: Sequence[str]) -> None:
        await self._write(self._pending_key, urls)
