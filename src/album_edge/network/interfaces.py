from __future__ import annotations

from album_edge.core.models import EdgeRequest, EdgeResponse


class Fetcher:
    async def fetch(self, request: EdgeRequest, *, timeout: float) -> EdgeResponse:
        """
        Perform ``request`` against the network, bounded by ``timeout`` seconds.

        Returns the response for any HTTP status. Raises ``FetchError`` on timeout,
        connection failure or a rejected cross-origin (CORS) read. Cross-origin
        requests in ``no-cors`` mode resolve to an opaque response.
        """
        raise NotImplementedError
