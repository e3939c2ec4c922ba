from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp
from multidict import CIMultiDict
from yarl import URL

from album_edge.core.models import EdgeRequest, EdgeResponse
from album_edge.core.urls import rebase_url, same_origin
from album_edge.errors import FetchError
from album_edge.network.interfaces import Fetcher

logger = logging.getLogger(__name__)

_HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)
# The session negotiates and decodes content encoding itself; stored bodies are always identity-encoded.
_DROP_REQUEST = _HOP_BY_HOP | {"host", "accept-encoding", "content-length", "cookie"}
_DROP_RESPONSE = _HOP_BY_HOP | {"content-encoding", "content-length", "set-cookie"}


def _filter_headers(headers, drop: frozenset[str]) -> CIMultiDict[str]:
    filtered: CIMultiDict[str] = CIMultiDict()
    for name, value in headers.items():
        if name.lower() in drop:
            continue
        filtered.add(name, value)
    return filtered


class AiohttpFetcher(Fetcher):
    """
    Fetches through a shared ``aiohttp.ClientSession``.

    URLs under ``scope_url`` are rewritten onto ``upstream_url`` so the edge can sit in
    front of the static origin. Anything outside the scope is cross-origin and gets
    browser-like treatment: ``no-cors`` resolves to an opaque response, ``cors``
    requires a matching ``Access-Control-Allow-Origin``.
    """

    def __init__(self, *, scope_url: str, upstream_url: str) -> None:
        self._scope_url = scope_url
        self._upstream_url = upstream_url
        self._scope_origin = str(URL(scope_url).origin())
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> AiohttpFetcher:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def start(self) -> None:
        if self._session and not self._session.closed:
            return
        self._session = aiohttp.ClientSession(cookie_jar=aiohttp.DummyCookieJar())

    async def stop(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def _cors_allowed(self, headers) -> bool:
        allowed = headers.get("Access-Control-Allow-Origin", "").strip()
        return allowed == "*" or allowed == self._scope_origin

    async def fetch(self, request: EdgeRequest, *, timeout: float) -> EdgeResponse:
        if not self._session or self._session.closed:
            await self.start()
        assert self._session is not None

        target = rebase_url(request.url, scope=self._scope_url, upstream=self._upstream_url)
        cross_origin = not same_origin(request.url, self._scope_url)
        logger.debug("edge.fetch_start url=%s target=%s mode=%s timeout=%s", request.url, target, request.mode, timeout)

        try:
            async with self._session.request(
                request.method,
                target,
                headers=_filter_headers(request.headers, _DROP_REQUEST),
                data=request.body or None,
                allow_redirects=True,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                body = await response.read()
                status = response.status
                reason = response.reason or ""
                headers = _filter_headers(response.headers, _DROP_RESPONSE)
        except asyncio.TimeoutError as e:
            raise FetchError(request.url, "timeout") from e
        except aiohttp.ClientError as e:
            raise FetchError(request.url, f"{type(e).__name__}: {e}") from e

        if cross_origin and request.mode == "no-cors":
            logger.debug("edge.fetch_opaque url=%s size=%d", request.url, len(body))
            return EdgeResponse.opaque(request.url, body)
        if cross_origin and not self._cors_allowed(headers):
            raise FetchError(request.url, "cors")

        logger.debug("edge.fetch_done url=%s status=%s size=%d", request.url, status, len(body))
        return EdgeResponse.build(
            status,
            body,
            headers=headers,
            status_text=reason,
            response_type="cors" if cross_origin else "basic",
            url=request.url,
        )
