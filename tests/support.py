from __future__ import annotations

from typing import Any, Optional

from album_edge.cache.memory import InMemoryCacheStore
from album_edge.config.models import AppConfig
from album_edge.core.models import EdgeResponse
from album_edge.network.mock import MockFetcher
from album_edge.worker import EdgeWorker

SCOPE = "https://albums.test/"


def make_config(**sections: Any) -> AppConfig:
    payload: dict[str, Any] = {
        "app": {
            "version": "2.0.0",
            "scope_url": SCOPE,
            "upstream_url": "https://origin.test/",
            "core_assets": ["./", "./index.html", "./albums.json"],
        },
        "logging": {"level": "DEBUG", "file": {"path": "", "rotation": {"backup_count": 1}}},
        "timeouts": {
            "navigation_seconds": 0.2,
            "json_seconds": 0.2,
            "other_seconds": 0.2,
            "default_seconds": 0.2,
            "offline_seconds": 0.2,
            "range_foreground_seconds": 0.2,
            "range_background_seconds": 0.5,
        },
    }
    for name, values in sections.items():
        payload.setdefault(name, {}).update(values)
    return AppConfig.model_validate(payload)


def ok(body: bytes, content_type: str = "application/octet-stream", url: str = "") -> EdgeResponse:
    return EdgeResponse.build(200, body, headers={"Content-Type": content_type}, url=url)


class RecordingClient:
    def __init__(self, client_id: str = "page-1") -> None:
        self.client_id = client_id
        self.events: list[dict[str, Any]] = []

    async def send(self, payload: dict[str, Any]) -> None:
        self.events.append(payload)

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [event for event in self.events if event["type"] == event_type]


def make_worker(
    fetcher: Optional[MockFetcher] = None,
    store: Optional[InMemoryCacheStore] = None,
    **sections: Any,
) -> tuple[EdgeWorker, MockFetcher, InMemoryCacheStore]:
    fetcher = fetcher or MockFetcher()
    store = store or InMemoryCacheStore()
    worker = EdgeWorker(config=make_config(**sections), store=store, fetcher=fetcher)
    return worker, fetcher, store
