import unittest

from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase

from album_edge.cache.memory import InMemoryCacheStore
from album_edge.core.models import EdgeResponse
from album_edge.network.mock import MockFetcher
from album_edge.server import EdgeServer
from album_edge.server.app import to_web_response
from album_edge.worker import EdgeWorker

from support import SCOPE, make_config, ok


class EdgeServerTests(AioHTTPTestCase):
    async def get_application(self) -> web.Application:
        self.config = make_config()
        self.fetcher = MockFetcher()
        self.worker = EdgeWorker(config=self.config, store=InMemoryCacheStore(), fetcher=self.fetcher)
        self.fetcher.route(SCOPE + "index.html", ok(b"<html>shell</html>", "text/html"))
        self.fetcher.route(SCOPE + "img/cover.webp", ok(b"img", "image/webp"))
        return EdgeServer(config=self.config, worker=self.worker).build_app()

    async def test_startup_installs_and_activates(self) -> None:
        self.assertTrue(self.worker.controlling)

    async def test_subresource_is_routed_through_worker(self) -> None:
        resp = await self.client.get("/img/cover.webp", headers={"Sec-Fetch-Dest": "image", "Sec-Fetch-Mode": "no-cors"})

        self.assertEqual(resp.status, 200)
        self.assertEqual(await resp.read(), b"img")
        self.assertIsNotNone(await self.worker.caches.match(SCOPE + "img/cover.webp"))

    async def test_failed_navigation_gets_app_shell(self) -> None:
        resp = await self.client.get("/player/7", headers={"Sec-Fetch-Mode": "navigate", "Sec-Fetch-Dest": "document"})

        self.assertEqual(resp.status, 200)
        self.assertEqual(await resp.text(), "<html>shell</html>")

    async def test_control_channel_answers_version_query(self) -> None:
        ws = await self.client.ws_connect(self.config.server.messages_path)
        try:
            await ws.send_json({"type": "GET_SW_VERSION"})
            message = await ws.receive_json(timeout=2)
        finally:
            await ws.close()

        self.assertEqual(message, {"type": "SW_VERSION", "version": "2.0.0"})


class ToWebResponseTests(unittest.TestCase):
    def test_opaque_response_is_replayed_with_guessed_type(self) -> None:
        response = to_web_response(EdgeResponse.opaque("https://cdn.test/a.png", b"png"))

        self.assertEqual(response.status, 200)
        self.assertEqual(response.content_type, "image/png")
        self.assertEqual(response.body, b"png")

    def test_partial_content_headers_survive(self) -> None:
        source = EdgeResponse.build(
            206,
            b"ab",
            headers={"Content-Range": "bytes 0-1/4", "Content-Length": "2", "Accept-Ranges": "bytes"},
        )

        response = to_web_response(source)

        self.assertEqual(response.status, 206)
        self.assertEqual(response.headers["Content-Range"], "bytes 0-1/4")
