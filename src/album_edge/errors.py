from __future__ import annotations


class EdgeError(Exception):
    """Base class for errors raised inside the edge engine."""


class FetchError(EdgeError):
    """A network attempt failed: timeout, abort, connection error or CORS rejection."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Fetch failed. url={url} reason={reason}")
        self.url = url
        self.reason = reason


class CacheStorageError(EdgeError):
    pass


class QuotaExceededError(CacheStorageError):
    pass


class StorageUnavailableError(CacheStorageError):
    pass
