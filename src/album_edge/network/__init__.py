"""Network access used by the routing engine."""

from album_edge.network.fetcher import AiohttpFetcher
from album_edge.network.interfaces import Fetcher
from album_edge.network.mock import MockFetcher

__all__ = ["AiohttpFetcher", "Fetcher", "MockFetcher"]
