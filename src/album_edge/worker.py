from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from album_edge.cache.generations import CacheFamily, GenerationNaming
from album_edge.cache.interfaces import CacheStore
from album_edge.cache.manager import CacheGenerationManager
from album_edge.config.models import AppConfig
from album_edge.core import responses
from album_edge.core.models import EdgeRequest, EdgeResponse
from album_edge.core.urls import resolve_url
from album_edge.errors import FetchError
from album_edge.messaging.bus import ClientMessageBus
from album_edge.messaging.commands import (
    CacheResources,
    ClearOfflineCache,
    GetVersion,
    RequestOfflineState,
    SetOfflineMode,
    SkipWaiting,
    parse_command,
)
from album_edge.messaging.events import OfflineState, WorkerVersion
from album_edge.network.interfaces import Fetcher
from album_edge.offline.package_manager import DownloadReport, OfflinePackageManager
from album_edge.routing.background import BackgroundJobs
from album_edge.routing.classifier import is_interceptable
from album_edge.routing.dispatcher import StrategyDispatcher

logger = logging.getLogger(__name__)


class WorkerState(str, Enum):
    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"


class EdgeWorker:
    """
    Lifecycle owner of the routing engine: install, activate, fetch, message and
    connectivity-restored hooks.

    Until it is activated the worker does not control pages, and every request is
    passed straight to the network.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        store: CacheStore,
        fetcher: Fetcher,
        bus: Optional[ClientMessageBus] = None,
    ) -> None:
        self._config = config
        self._fetcher = fetcher
        self._bus = bus or ClientMessageBus()
        self._jobs = BackgroundJobs()
        self._state = WorkerState.PARSED

        scope_url = config.app.scope_url
        naming = GenerationNaming(
            version=config.app.version,
            offline_name=config.cache.offline_generation,
            meta_name=config.cache.meta_generation,
        )
        self._caches = CacheGenerationManager(store, naming)
        self._dispatcher = StrategyDispatcher(
            caches=self._caches,
            fetcher=fetcher,
            timeouts=config.timeouts,
            scope_url=scope_url,
            app_shell_url=resolve_url(scope_url, config.app.app_shell),
            jobs=self._jobs,
        )
        self._offline = OfflinePackageManager(
            caches=self._caches,
            fetcher=fetcher,
            bus=self._bus,
            timeouts=config.timeouts,
            scope_url=scope_url,
        )

    @property
    def version(self) -> str:
        return self._config.app.version

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def controlling(self) -> bool:
        return self._state is WorkerState.ACTIVATED

    @property
    def caches(self) -> CacheGenerationManager:
        return self._caches

    @property
    def bus(self) -> ClientMessageBus:
        return self._bus

    @property
    def jobs(self) -> BackgroundJobs:
        return self._jobs

    @property
    def offline(self) -> OfflinePackageManager:
        return self._offline

    @property
    def offline_mode(self) -> bool:
        return self._dispatcher.offline_mode

    async def install(self) -> int:
        """Pre-cache the app-shell manifest into the core generation. Individual failures are tolerated."""
        self._state = WorkerState.INSTALLING
        scope_url = self._config.app.scope_url
        handle = await self._caches.open(CacheFamily.CORE)
        cached = 0
        for asset in self._config.app.core_assets:
            url = resolve_url(scope_url, asset)
            request = EdgeRequest.build(url, mode="same-origin")
            try:
                response = await self._fetcher.fetch(request, timeout=self._config.timeouts.default_seconds)
            except FetchError as e:
                logger.warning("Core asset pre-cache failed, continuing. url=%s reason=%s", url, e.reason)
                continue
            if not response.ok:
                logger.warning("Core asset pre-cache got bad status, continuing. url=%s status=%s", url, response.status)
                continue
            if await self._caches.put(handle, request, response):
                cached += 1

        self._state = WorkerState.INSTALLED
        logger.info(
            "Worker installed. version=%s core_cached=%d core_total=%d",
            self.version,
            cached,
            len(self._config.app.core_assets),
        )
        if self._config.app.skip_waiting:
            await self.activate()
        return cached

    async def skip_waiting(self) -> None:
        if self._state is WorkerState.INSTALLED:
            await self.activate()

    async def activate(self) -> None:
        if self._state is WorkerState.ACTIVATED:
            return
        self._state = WorkerState.ACTIVATING
        deleted = await self._caches.reconcile(self.version)
        for family in CacheFamily:
            await self._caches.open(family)
        self._state = WorkerState.ACTIVATED
        logger.info("Worker activated. version=%s stale_generations_deleted=%d", self.version, len(deleted))
        await self._broadcast_offline_state()

    async def handle_fetch(self, request: EdgeRequest) -> EdgeResponse:
        if not self.controlling or not is_interceptable(request):
            return await self._passthrough(request)
        return await self._dispatcher.dispatch(request)

    async def _passthrough(self, request: EdgeRequest) -> EdgeResponse:
        try:
            return await self._fetcher.fetch(request, timeout=self._config.timeouts.default_seconds)
        except FetchError as e:
            logger.warning("Passthrough request failed. method=%s url=%s reason=%s", request.method, request.url, e.reason)
            return responses.bad_gateway(e.reason)

    async def handle_message(self, payload: Any) -> None:
        try:
            command = parse_command(payload)
        except (ValidationError, ValueError) as e:
            logger.warning("Ignoring malformed control message. error=%s", e)
            return

        logger.debug("Control message received. type=%s", command.type)
        match command:
            case SetOfflineMode(value=value):
                self._dispatcher.set_offline_mode(value)
                await self._broadcast_offline_state()
            case RequestOfflineState():
                await self._broadcast_offline_state()
            case CacheResources(resources=resources):
                self._jobs.spawn(self._offline.add_resources(resources), name="offline-download")
            case ClearOfflineCache(offline_mode=offline_mode):
                # clear_current queues behind a running download; the mode applies now.
                if offline_mode is not None:
                    self._dispatcher.set_offline_mode(offline_mode)
                    await self._broadcast_offline_state()
                self._jobs.spawn(self._offline.clear_current(), name="offline-clear")
            case SkipWaiting():
                await self.skip_waiting()
            case GetVersion():
                await self._bus.broadcast(WorkerVersion(version=self.version))

    async def on_connectivity_restored(self) -> Optional[DownloadReport]:
        return await self._offline.retry_pending()

    async def probe_origin(self) -> bool:
        probe_url = self._config.connectivity.probe_url or self._config.app.scope_url
        request = EdgeRequest.build(probe_url, method="HEAD", mode="same-origin")
        try:
            await self._fetcher.fetch(request, timeout=self._config.timeouts.offline_seconds)
        except FetchError:
            return False
        return True

    async def shutdown(self) -> None:
        await self._jobs.cancel_all()

    async def _broadcast_offline_state(self) -> None:
        await self._bus.broadcast(OfflineState(value=self.offline_mode, active=self._offline.active))
