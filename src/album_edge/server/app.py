from __future__ import annotations

import asyncio
import logging
import mimetypes
import uuid
from typing import Any, Optional, get_args

from aiohttp import WSMsgType, web
from multidict import CIMultiDict
from yarl import URL

from album_edge.config.models import AppConfig
from album_edge.core.models import EdgeRequest, EdgeResponse, RequestDestination, RequestMode
from album_edge.offline.connectivity import ConnectivityMonitor
from album_edge.worker import EdgeWorker

logger = logging.getLogger(__name__)

_MODES = frozenset(get_args(RequestMode))
_DESTINATIONS = frozenset(get_args(RequestDestination))


class _WebSocketClient:
    def __init__(self, ws: web.WebSocketResponse) -> None:
        self._client_id = uuid.uuid4().hex
        self._ws = ws

    @property
    def client_id(self) -> str:
        return self._client_id

    async def send(self, payload: dict[str, Any]) -> None:
        if self._ws.closed:
            raise ConnectionResetError("WebSocket is closed")
        await self._ws.send_json(payload)


def to_edge_request(request: web.Request, *, scope_url: str, body: bytes) -> EdgeRequest:
    """Rebuild the page's view of a request: its URL under the scope origin and its fetch metadata."""
    url = str(URL(scope_url).origin().join(request.rel_url))

    mode = request.headers.get("Sec-Fetch-Mode", "").lower()
    if mode not in _MODES:
        mode = "same-origin"
    destination = request.headers.get("Sec-Fetch-Dest", "").lower()
    if destination not in _DESTINATIONS:
        destination = ""

    return EdgeRequest.build(
        url,
        method=request.method,
        headers=CIMultiDict(request.headers),
        mode=mode,  # type: ignore[arg-type]
        destination=destination,  # type: ignore[arg-type]
        client_id=request.headers.get("Referer"),
        body=body,
    )


def to_web_response(response: EdgeResponse) -> web.Response:
    headers = CIMultiDict(response.headers)
    headers.popall("Content-Length", None)
    status = response.status
    if response.is_opaque:
        # Opaque bodies replay whole; their real status and type are unknown to us.
        status = 200
        guessed, _ = mimetypes.guess_type(URL(response.url).path)
        if guessed:
            headers["Content-Type"] = guessed
    return web.Response(
        status=status,
        reason=response.status_text or None,
        body=response.body,
        headers=headers,
    )


class EdgeServer:
    """
    ``aiohttp.web`` host for an ``EdgeWorker``.

    Every request except the control WebSocket is routed through the worker.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        worker: EdgeWorker,
        monitor: Optional[ConnectivityMonitor] = None,
    ) -> None:
        self._config = config
        self._worker = worker
        self._monitor = monitor

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get(self._config.server.messages_path, self._handle_messages)
        app.router.add_route("*", "/{tail:.*}", self._handle_proxy)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _on_startup(self, app: web.Application) -> None:
        await self._worker.install()
        if self._monitor is not None:
            self._monitor.start()

    async def _on_cleanup(self, app: web.Application) -> None:
        if self._monitor is not None:
            await self._monitor.stop()
        await self._worker.shutdown()

    async def _handle_messages(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=30.0)
        await ws.prepare(request)
        client = _WebSocketClient(ws)
        self._worker.bus.register(client)
        try:
            async for message in ws:
                if message.type == WSMsgType.TEXT:
                    await self._worker.handle_message(message.data)
                elif message.type == WSMsgType.ERROR:
                    logger.warning("Control channel error. client_id=%s error=%s", client.client_id, ws.exception())
        finally:
            self._worker.bus.unregister(client.client_id)
        return ws

    async def _handle_proxy(self, request: web.Request) -> web.Response:
        body = await request.read() if request.can_read_body else b""
        edge_request = to_edge_request(request, scope_url=self._config.app.scope_url, body=body)
        response = await self._worker.handle_fetch(edge_request)
        return to_web_response(response)

    async def serve(self, *, run_seconds: Optional[float] = None) -> None:
        runner = web.AppRunner(self.build_app())
        await runner.setup()
        site = web.TCPSite(runner, self._config.server.host, self._config.server.port)
        await site.start()
        logger.info(
            "Edge server listening. host=%s port=%s scope=%s upstream=%s",
            self._config.server.host,
            self._config.server.port,
            self._config.app.scope_url,
            self._config.app.upstream_url,
        )
        try:
            if run_seconds is not None:
                await asyncio.sleep(run_seconds)
            else:
                await asyncio.Event().wait()
        finally:
            await runner.cleanup()
