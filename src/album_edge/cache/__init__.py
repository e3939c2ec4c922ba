"""Versioned cache generations and their storage backends."""

from album_edge.cache.filesystem import FileSystemCacheStore
from album_edge.cache.generations import CacheFamily, GenerationId, GenerationNaming
from album_edge.cache.interfaces import CacheStore
from album_edge.cache.manager import CacheGenerationManager, CacheHandle
from album_edge.cache.memory import InMemoryCacheStore
from album_edge.cache.snapshot import CacheEntry

__all__ = [
    "CacheEntry",
    "CacheFamily",
    "CacheGenerationManager",
    "CacheHandle",
    "CacheStore",
    "FileSystemCacheStore",
    "GenerationId",
    "GenerationNaming",
    "InMemoryCacheStore",
]
