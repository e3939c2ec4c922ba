from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from album_edge.cache.generations import CacheFamily
from album_edge.cache.manager import CacheGenerationManager
from album_edge.cache.snapshot import CacheEntry
from album_edge.config.models import TimeoutSettings
from album_edge.core import responses
from album_edge.core.models import EdgeRequest, EdgeResponse
from album_edge.errors import FetchError
from album_edge.network.interfaces import Fetcher
from album_edge.routing.background import BackgroundJobs

logger = logging.getLogger(__name__)

_RANGE_SPEC = re.compile(r"^\s*(\d*)\s*-\s*(\d*)\s*$")

# Stored bodies are looked up here, in order, before giving up on slicing.
_SLICE_SOURCES: tuple[CacheFamily, ...] = (
    CacheFamily.MEDIA,
    CacheFamily.OFFLINE,
    CacheFamily.RUNTIME,
    CacheFamily.CORE,
)


@dataclass(frozen=True, slots=True)
class ByteRange:
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1


def parse_range(header: Optional[str], total: int) -> Optional[ByteRange]:
    """
    Parse a ``Range`` header against a body of ``total`` bytes.

    Supports ``bytes=start-end``, ``bytes=start-`` and the suffix form ``bytes=-N``.
    Only the first range of a multi-range header is honoured. The end is clamped to
    the last byte. Returns None when the range cannot be satisfied.
    """
    if not header or total <= 0:
        return None
    unit, sep, ranges = header.partition("=")
    if not sep or unit.strip().lower() != "bytes":
        return None

    match = _RANGE_SPEC.match(ranges.split(",", 1)[0])
    if match is None:
        return None
    start_str, end_str = match.groups()

    if not start_str and not end_str:
        return None
    if not start_str:
        suffix = int(end_str)
        if suffix == 0:
            return None
        return ByteRange(start=max(0, total - suffix), end=total - 1)

    start = int(start_str)
    end = int(end_str) if end_str else total - 1
    if start >= total:
        return None
    end = min(end, total - 1)
    if end < start:
        return None
    return ByteRange(start=start, end=end)


def is_background_request(request: EdgeRequest) -> bool:
    """Prefetches and requests without a page window get the longer timeout."""
    if request.client_id is None:
        return True
    purpose = (request.headers.get("Sec-Purpose") or request.headers.get("Purpose") or "").lower()
    return "prefetch" in purpose


def slice_entry(entry: CacheEntry, range_header: Optional[str]) -> EdgeResponse:
    body = entry.response.body
    total = len(body)
    byte_range = parse_range(range_header, total)
    if byte_range is None:
        logger.debug("Unsatisfiable range. key=%s range=%s total=%d", entry.key, range_header, total)
        return responses.range_not_satisfiable(total)
    return responses.partial_content(
        body[byte_range.start : byte_range.end + 1],
        start=byte_range.start,
        end=byte_range.end,
        total=total,
        content_type=entry.response.content_type,
    )


class RangeReconstructionEngine:
    """
    Serves byte-range audio requests.

    A range is sliced only out of a stored full 200 body. Opaque and already
    partial entries are treated as misses; the request then goes to the network
    and a full response, if one comes back, is stored for the next range. When
    the origin answers the range itself with a 206, the full body is fetched
    once in the background so later ranges can be sliced locally.
    """

    def __init__(
        self,
        *,
        caches: CacheGenerationManager,
        fetcher: Fetcher,
        timeouts: TimeoutSettings,
        jobs: Optional[BackgroundJobs] = None,
    ) -> None:
        self._caches = caches
        self._fetcher = fetcher
        self._timeouts = timeouts
        self._jobs = jobs or BackgroundJobs()
        self._filling: set[str] = set()

    async def find_full_entry(self, request: EdgeRequest) -> Optional[CacheEntry]:
        for family in _SLICE_SOURCES:
            entry = await self._caches.match_in(request, (family,))
            if entry is None:
                continue
            if not entry.response.is_full_body():
                logger.debug(
                    "Skipping unsliceable cache entry. key=%s family=%s status=%s type=%s",
                    entry.key,
                    family.value,
                    entry.response.status,
                    entry.response.response_type,
                )
                continue
            return entry
        return None

    async def handle(self, request: EdgeRequest) -> EdgeResponse:
        entry = await self.find_full_entry(request)
        if entry is not None:
            return slice_entry(entry, request.range_header)
        return await self._passthrough(request)

    async def _passthrough(self, request: EdgeRequest) -> EdgeResponse:
        background = is_background_request(request)
        timeout = self._timeouts.range_background_seconds if background else self._timeouts.range_foreground_seconds
        try:
            response = await self._fetcher.fetch(request, timeout=timeout)
        except FetchError as e:
            logger.warning("Range passthrough failed. url=%s background=%s error=%s", request.url, background, e.reason)
            return responses.offline_unavailable("Audio unavailable offline")

        if response.is_full_body():
            media = await self._caches.open(CacheFamily.MEDIA)
            await self._caches.put(media, request, response)
        elif response.status == 206 and request.url not in self._filling:
            self._filling.add(request.url)
            self._jobs.spawn(self._fill(request), name=f"range-fill {request.url}")
        return response

    async def _fill(self, request: EdgeRequest) -> None:
        full_request = request.without_header("Range")
        try:
            response = await self._fetcher.fetch(full_request, timeout=self._timeouts.range_background_seconds)
        except FetchError as e:
            logger.info("Full-body fetch for range slicing failed. url=%s reason=%s", request.url, e.reason)
            return
        finally:
            self._filling.discard(request.url)
        if not response.is_full_body():
            logger.debug("Origin did not return a full body. url=%s status=%s", request.url, response.status)
            return
        media = await self._caches.open(CacheFamily.MEDIA)
        await self._caches.put(media, full_request, response)
