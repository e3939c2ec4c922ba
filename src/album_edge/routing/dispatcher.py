from __future__ import annotations

import logging
from typing import Optional

from album_edge.cache.generations import LOOKUP_ORDER, CacheFamily
from album_edge.cache.manager import CacheGenerationManager
from album_edge.config.models import TimeoutSettings
from album_edge.core import responses
from album_edge.core.models import EdgeRequest, EdgeResponse
from album_edge.errors import FetchError
from album_edge.network.interfaces import Fetcher
from album_edge.routing.background import BackgroundJobs
from album_edge.routing.classifier import RequestClass, classify, is_font
from album_edge.routing.range_engine import RangeReconstructionEngine

logger = logging.getLogger(__name__)

CLASS_FAMILIES: dict[RequestClass, CacheFamily] = {
    RequestClass.NAVIGATION: CacheFamily.CORE,
    RequestClass.JSON: CacheFamily.RUNTIME,
    RequestClass.IMAGE: CacheFamily.IMAGES,
    RequestClass.AUDIO: CacheFamily.MEDIA,
    RequestClass.STATIC: CacheFamily.RUNTIME,
    RequestClass.OTHER: CacheFamily.RUNTIME,
}


def is_cacheable(request_class: RequestClass, response: EdgeResponse) -> bool:
    """
    Whether a network response may be stored for this class of request.

    Audio must be a full readable 200 so ranges can later be sliced from it.
    Documents must be ok. Everything else also accepts opaque responses.
    """
    if request_class is RequestClass.AUDIO:
        return response.is_full_body()
    if request_class is RequestClass.NAVIGATION:
        return response.ok
    return response.ok or response.is_opaque


class StrategyDispatcher:
    """
    Routes one intercepted GET request to its caching strategy.

    The dispatcher is long-lived; the offline-mode flag lives here and is read at
    the start of every dispatch.
    """

    def __init__(
        self,
        *,
        caches: CacheGenerationManager,
        fetcher: Fetcher,
        timeouts: TimeoutSettings,
        scope_url: str,
        app_shell_url: str,
        jobs: Optional[BackgroundJobs] = None,
    ) -> None:
        self._caches = caches
        self._fetcher = fetcher
        self._timeouts = timeouts
        self._scope_url = scope_url
        self._app_shell_url = app_shell_url
        self._jobs = jobs or BackgroundJobs()
        self._range_engine = RangeReconstructionEngine(
            caches=caches, fetcher=fetcher, timeouts=timeouts, jobs=self._jobs
        )
        self._offline_mode = False

    @property
    def offline_mode(self) -> bool:
        return self._offline_mode

    def set_offline_mode(self, value: bool) -> None:
        if value != self._offline_mode:
            logger.info("Offline mode changed. offline_mode=%s", value)
        self._offline_mode = value

    @property
    def jobs(self) -> BackgroundJobs:
        return self._jobs

    async def dispatch(self, request: EdgeRequest) -> EdgeResponse:
        request_class = classify(request, self._scope_url)
        offline_mode = self._offline_mode
        logger.debug(
            "Dispatching request. url=%s class=%s offline_mode=%s range=%s",
            request.url,
            request_class.value,
            offline_mode,
            request.range_header,
        )

        if request_class is RequestClass.AUDIO and request.range_header:
            return await self._range_engine.handle(request)
        if request_class is RequestClass.NAVIGATION:
            return await self._navigation(request)
        if offline_mode:
            return await self._cache_first_strict(request, request_class)

        match request_class:
            case RequestClass.JSON:
                return await self._network_first(
                    request,
                    request_class,
                    timeout=self._timeouts.json_seconds,
                    unavailable=responses.offline_json_marker,
                )
            case RequestClass.IMAGE:
                return await self._cache_first_with_refresh(request, request_class)
            case RequestClass.AUDIO:
                return await self._stale_while_revalidate(request)
            case RequestClass.STATIC if is_font(request):
                return await self._cache_first_with_refresh(request, request_class)
            case RequestClass.STATIC:
                return await self._cache_first(request, request_class)
            case _:
                return await self._network_first(
                    request,
                    request_class,
                    timeout=self._timeouts.other_seconds,
                    unavailable=responses.offline_unavailable,
                )

    async def _try_fetch(self, request: EdgeRequest, *, timeout: float) -> Optional[EdgeResponse]:
        try:
            return await self._fetcher.fetch(request, timeout=timeout)
        except FetchError as e:
            logger.info("Network attempt failed. url=%s reason=%s", request.url, e.reason)
            return None

    async def _lookup(self, request: EdgeRequest | str, family: CacheFamily) -> Optional[EdgeResponse]:
        families = (family,) + tuple(f for f in LOOKUP_ORDER if f is not family)
        entry = await self._caches.match_in(request, families)
        return entry.response if entry else None

    async def _store(self, request: EdgeRequest, family: CacheFamily, response: EdgeResponse) -> None:
        handle = await self._caches.open(family)
        await self._caches.put(handle, request, response)

    async def _navigation(self, request: EdgeRequest) -> EdgeResponse:
        response = await self._try_fetch(request, timeout=self._timeouts.navigation_seconds)
        if response is not None and response.ok:
            await self._store(request, CacheFamily.CORE, response)
            return response

        cached = await self._lookup(request, CacheFamily.CORE)
        if cached is not None:
            return cached
        shell = await self._lookup(self._app_shell_url, CacheFamily.CORE)
        if shell is not None:
            logger.info("Serving app shell for failed navigation. url=%s", request.url)
            return shell
        if response is not None:
            return response
        return responses.offline_unavailable()

    async def _network_first(
        self,
        request: EdgeRequest,
        request_class: RequestClass,
        *,
        timeout: float,
        unavailable,
    ) -> EdgeResponse:
        family = CLASS_FAMILIES[request_class]
        response = await self._try_fetch(request, timeout=timeout)
        if response is not None and is_cacheable(request_class, response):
            await self._store(request, family, response)
            return response

        cached = await self._lookup(request, family)
        if cached is not None:
            return cached
        if response is not None:
            return response
        return unavailable()

    async def _cache_first_with_refresh(self, request: EdgeRequest, request_class: RequestClass) -> EdgeResponse:
        family = CLASS_FAMILIES[request_class]
        cached = await self._lookup(request, family)
        if cached is not None:
            self._jobs.spawn(self._refresh(request, request_class), name=f"refresh {request.url}")
            return cached

        response = await self._try_fetch(request, timeout=self._timeouts.default_seconds)
        if response is not None:
            if is_cacheable(request_class, response):
                await self._store(request, family, response)
            return response
        if request_class is RequestClass.IMAGE:
            return responses.image_placeholder()
        return responses.not_found()

    async def _stale_while_revalidate(self, request: EdgeRequest) -> EdgeResponse:
        cached = await self._lookup(request, CacheFamily.MEDIA)
        if cached is not None:
            self._jobs.spawn(self._refresh(request, RequestClass.AUDIO), name=f"revalidate {request.url}")
            return cached

        response = await self._try_fetch(request, timeout=self._timeouts.default_seconds)
        if response is None:
            return responses.not_found("Audio not found")
        if is_cacheable(RequestClass.AUDIO, response):
            await self._store(request, CacheFamily.MEDIA, response)
        return response

    async def _cache_first(self, request: EdgeRequest, request_class: RequestClass) -> EdgeResponse:
        family = CLASS_FAMILIES[request_class]
        cached = await self._lookup(request, family)
        if cached is not None:
            return cached

        response = await self._try_fetch(request, timeout=self._timeouts.default_seconds)
        if response is None:
            return responses.not_found()
        if is_cacheable(request_class, response):
            await self._store(request, family, response)
        return response

    async def _cache_first_strict(self, request: EdgeRequest, request_class: RequestClass) -> EdgeResponse:
        family = CLASS_FAMILIES[request_class]
        cached = await self._lookup(request, family)
        if cached is None:
            # Offline, a copy stored under another cache-busting query beats no answer.
            cached = await self._caches.match(request, ignore_search=True)
        if cached is not None:
            return cached

        response = await self._try_fetch(request, timeout=self._timeouts.offline_seconds)
        if response is not None:
            if is_cacheable(request_class, response):
                await self._store(request, family, response)
            return response

        logger.info("Offline mode miss. url=%s class=%s", request.url, request_class.value)
        if request_class is RequestClass.IMAGE:
            return responses.image_placeholder()
        if request_class is RequestClass.JSON:
            return responses.offline_json_marker()
        return responses.offline_unavailable()

    async def _refresh(self, request: EdgeRequest, request_class: RequestClass) -> None:
        try:
            response = await self._fetcher.fetch(request, timeout=self._timeouts.default_seconds)
        except FetchError as e:
            logger.debug("Background refresh skipped. url=%s reason=%s", request.url, e.reason)
            return
        if is_cacheable(request_class, response):
            await self._store(request, CLASS_FAMILIES[request_class], response)
