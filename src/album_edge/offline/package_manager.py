from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from album_edge.cache.generations import CacheFamily
from album_edge.cache.manager import CacheGenerationManager
from album_edge.config.models import TimeoutSettings
from album_edge.core.models import EdgeRequest, EdgeResponse
from album_edge.core.urls import is_http_url, resolve_url
from album_edge.errors import FetchError
from album_edge.messaging.bus import ClientMessageBus
from album_edge.messaging.events import OfflineDone, OfflineProgress, progress_percent
from album_edge.network.interfaces import Fetcher
from album_edge.offline.lists import OfflineListStore, ordered_unique
from album_edge.routing.classifier import RequestClass, classify

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DownloadReport:
    requested: tuple[str, ...]
    cached: tuple[str, ...]
    skipped: tuple[str, ...]

    @property
    def complete(self) -> bool:
        return not self.skipped


class OfflinePackageManager:
    """
    Downloads a user-selected set of resources into the offline generation.

    Runs are serialized. Every attempt advances the progress counter, so a failing
    item is reported as skipped instead of stalling the batch.
    """

    def __init__(
        self,
        *,
        caches: CacheGenerationManager,
        fetcher: Fetcher,
        bus: ClientMessageBus,
        timeouts: TimeoutSettings,
        scope_url: str,
    ) -> None:
        self._caches = caches
        self._fetcher = fetcher
        self._bus = bus
        self._timeouts = timeouts
        self._scope_url = scope_url
        self._lists = OfflineListStore(caches, scope_url)
        self._run_lock = asyncio.Lock()
        self._active = False

    @property
    def lists(self) -> OfflineListStore:
        return self._lists

    @property
    def active(self) -> bool:
        return self._active

    def query_state(self) -> dict[str, bool]:
        return {"active": self._active}

    def resolve(self, urls: Sequence[str]) -> list[str]:
        resolved: list[str] = []
        for raw in urls:
            raw = raw.strip()
            if not raw:
                continue
            url = resolve_url(self._scope_url, raw)
            if not is_http_url(url):
                logger.warning("Ignoring non-http offline resource. url=%s", raw)
                continue
            resolved.append(url)
        return ordered_unique(resolved)

    async def add_resources(self, urls: Sequence[str]) -> DownloadReport:
        async with self._run_lock:
            self._active = True
            try:
                return await self._run(urls)
            finally:
                self._active = False

    async def _run(self, urls: Sequence[str]) -> DownloadReport:
        await self._lists.save_pending(list(urls))
        targets = self.resolve(urls)
        total = len(targets)
        logger.info("Offline download started. requested=%d unique=%d", len(urls), total)

        handle = await self._caches.open(CacheFamily.OFFLINE)
        cached: list[str] = []
        skipped: list[str] = []
        for index, url in enumerate(targets, start=1):
            response = await self._download(url)
            if response is not None and await self._caches.put(handle, url, response):
                cached.append(url)
            else:
                skipped.append(url)
            await self._bus.broadcast(OfflineProgress(percent=progress_percent(index, total)))

        await self._lists.merge_resources(cached)
        # Whatever could not be fetched stays pending for the next connectivity-restored retry.
        await self._lists.save_pending(skipped)
        await self._bus.broadcast(OfflineDone())

        report = DownloadReport(requested=tuple(targets), cached=tuple(cached), skipped=tuple(skipped))
        logger.info("Offline download finished. cached=%d skipped=%d", len(cached), len(skipped))
        return report

    async def _download(self, url: str) -> Optional[EdgeResponse]:
        request = EdgeRequest.build(url, mode="cors")
        is_audio = classify(request, self._scope_url) is RequestClass.AUDIO
        timeout = self._timeouts.default_seconds

        direct: Optional[EdgeResponse] = None
        try:
            direct = await self._fetcher.fetch(request, timeout=timeout)
        except FetchError as e:
            logger.info("Offline direct fetch failed. url=%s reason=%s", url, e.reason)

        if is_audio:
            # Opaque or partial audio could never be range-sliced later.
            if direct is not None and direct.is_full_body():
                return direct
            logger.warning(
                "Skipping audio without a full readable body. url=%s status=%s",
                url,
                direct.status if direct is not None else None,
            )
            return None

        if direct is not None and direct.ok:
            return direct
        try:
            fallback = await self._fetcher.fetch(request.with_mode("no-cors"), timeout=timeout)
        except FetchError as e:
            logger.warning("Offline fetch failed, skipping. url=%s reason=%s", url, e.reason)
            return None
        if fallback.ok or fallback.is_opaque:
            return fallback
        logger.warning("Offline fetch returned unusable status, skipping. url=%s status=%s", url, fallback.status)
        return None

    async def clear_current(self) -> int:
        async with self._run_lock:
            urls = await self._lists.load_resources()
            handle = self._caches.handle_for(CacheFamily.OFFLINE)
            removed = 0
            for url in urls:
                if await self._caches.delete(handle, url):
                    removed += 1
            await self._lists.save_resources([])
            await self._lists.save_pending([])
        logger.info("Offline resources cleared. listed=%d removed=%d", len(urls), removed)
        await self._bus.broadcast(OfflineDone())
        return removed

    async def retry_pending(self) -> Optional[DownloadReport]:
        pending = await self._lists.load_pending()
        if not pending:
            return None
        logger.info("Retrying pending offline download. urls=%d", len(pending))
        return await self.add_resources(pending)
