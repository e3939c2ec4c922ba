from __future__ import annotations

import logging

from album_edge.cache.filesystem import FileSystemCacheStore
from album_edge.cache.interfaces import CacheStore
from album_edge.cache.memory import InMemoryCacheStore
from album_edge.config.models import AppConfig, CacheSettings
from album_edge.network.fetcher import AiohttpFetcher
from album_edge.worker import EdgeWorker

logger = logging.getLogger(__name__)


def build_store(settings: CacheSettings) -> CacheStore:
    if settings.backend == "memory":
        logger.info("Using in-memory cache store. enabled=%s", settings.enabled)
        return InMemoryCacheStore(enabled=settings.enabled, max_bytes=settings.max_bytes)
    logger.info("Using file-system cache store. root=%s enabled=%s", settings.storage_dir, settings.enabled)
    return FileSystemCacheStore(settings.storage_dir, enabled=settings.enabled, max_bytes=settings.max_bytes)


def build_fetcher(config: AppConfig) -> AiohttpFetcher:
    return AiohttpFetcher(scope_url=config.app.scope_url, upstream_url=config.app.upstream_url)


def build_worker(config: AppConfig, fetcher: AiohttpFetcher) -> EdgeWorker:
    return EdgeWorker(config=config, store=build_store(config.cache), fetcher=fetcher)
