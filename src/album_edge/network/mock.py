from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Union

from album_edge.core.models import EdgeRequest, EdgeResponse
from album_edge.core.urls import normalize_url
from album_edge.errors import FetchError

Route = Union[EdgeResponse, Exception, Callable[[EdgeRequest], EdgeResponse]]


@dataclass
class MockFetcher:
    """
    A scripted fetcher for exercising routing strategies without a network.

    Unrouted URLs fail with ``FetchError`` as if the host were unreachable.
    ``delays`` hold a response back; the call still honours ``timeout``.
    """

    routes: Dict[str, Route] = field(default_factory=dict)
    delays: Dict[str, float] = field(default_factory=dict)
    online: bool = True
    calls: List[EdgeRequest] = field(default_factory=list)

    def route(self, url: str, result: Route) -> None:
        self.routes[normalize_url(url)] = result

    def calls_for(self, url: str) -> List[EdgeRequest]:
        key = normalize_url(url)
        return [call for call in self.calls if normalize_url(call.url) == key]

    async def fetch(self, request: EdgeRequest, *, timeout: float) -> EdgeResponse:
        self.calls.append(request)
        key = normalize_url(request.url)
        if not self.online:
            raise FetchError(request.url, "offline")

        delay = self.delays.get(key, 0.0)
        if delay:
            try:
                await asyncio.wait_for(asyncio.sleep(delay), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise FetchError(request.url, "timeout") from e

        result = self.routes.get(key)
        if result is None:
            raise FetchError(request.url, "unreachable")
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(request)
        return result
