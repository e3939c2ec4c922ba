from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class OfflineState:
    value: bool
    active: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {"type": "OFFLINE_STATE", "value": self.value, "active": self.active}


@dataclass(frozen=True, slots=True)
class OfflineProgress:
    percent: int

    def to_payload(self) -> dict[str, Any]:
        return {"type": "OFFLINE_PROGRESS", "percent": self.percent}


@dataclass(frozen=True, slots=True)
class OfflineDone:
    def to_payload(self) -> dict[str, Any]:
        return {"type": "OFFLINE_DONE"}


@dataclass(frozen=True, slots=True)
class WorkerVersion:
    version: str

    def to_payload(self) -> dict[str, Any]:
        return {"type": "SW_VERSION", "version": self.version}


BroadcastEvent = Union[OfflineState, OfflineProgress, OfflineDone, WorkerVersion]


def progress_percent(completed: int, total: int) -> int:
    if total <= 0:
        return 100
    return max(0, min(100, round(completed * 100 / total)))
