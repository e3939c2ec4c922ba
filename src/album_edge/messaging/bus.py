from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from album_edge.messaging.events import BroadcastEvent

logger = logging.getLogger(__name__)


class ClientConnection(Protocol):
    @property
    def client_id(self) -> str:
        ...

    async def send(self, payload: dict[str, Any]) -> None:
        ...


class ClientMessageBus:
    """
    Fan-out of worker events to every connected page.

    Delivery is fire-and-forget: nothing is acknowledged or retried, and a client
    whose send fails is dropped from the registry.
    """

    def __init__(self) -> None:
        self._clients: dict[str, ClientConnection] = {}

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def register(self, client: ClientConnection) -> None:
        self._clients[client.client_id] = client
        logger.debug("Client registered. client_id=%s clients=%d", client.client_id, len(self._clients))

    def unregister(self, client_id: str) -> None:
        if self._clients.pop(client_id, None) is not None:
            logger.debug("Client unregistered. client_id=%s clients=%d", client_id, len(self._clients))

    async def broadcast(self, event: BroadcastEvent) -> int:
        payload = event.to_payload()
        clients = list(self._clients.values())
        if not clients:
            return 0
        results = await asyncio.gather(*(client.send(payload) for client in clients), return_exceptions=True)
        delivered = 0
        for client, result in zip(clients, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Broadcast to client failed, dropping client. client_id=%s type=%s error=%s",
                    client.client_id,
                    payload["type"],
                    result,
                )
                self.unregister(client.client_id)
                continue
            delivered += 1
        return delivered
