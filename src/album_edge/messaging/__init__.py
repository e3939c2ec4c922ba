"""Control commands from pages and events broadcast back to them."""

from album_edge.messaging.bus import ClientConnection, ClientMessageBus
from album_edge.messaging.commands import ControlCommand, parse_command
from album_edge.messaging.events import (
    BroadcastEvent,
    OfflineDone,
    OfflineProgress,
    OfflineState,
    WorkerVersion,
)

__all__ = [
    "BroadcastEvent",
    "ClientConnection",
    "ClientMessageBus",
    "ControlCommand",
    "OfflineDone",
    "OfflineProgress",
    "OfflineState",
    "WorkerVersion",
    "parse_command",
]
