from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import shutil
import threading
from pathlib import Path
from typing import Any, Optional, Sequence

from album_edge.cache.interfaces import CacheStore
from album_edge.cache.snapshot import CacheEntry, decode_entry, encode_entry_metadata
from album_edge.errors import CacheStorageError, QuotaExceededError, StorageUnavailableError

logger = logging.getLogger(__name__)


def atomic_write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp_path.replace(path)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_bytes(data)
    tmp_path.replace(path)


def _entry_stem(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _read_metadata(meta_path: Path) -> dict[str, Any]:
    payload = json.loads(meta_path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Cache entry metadata must be an object, got: {type(payload).__name__}")
    return payload


class FileSystemCacheStore(CacheStore):
    """
    Cache generations persisted as directories under ``root``.

    Each entry is a ``<sha256(key)>.body`` file holding the raw body and a
    ``<sha256(key)>.json`` metadata file. The body is written first; an entry only
    becomes visible once its metadata file has been atomically replaced.

    Disk work runs in worker threads via ``asyncio.to_thread`` so large bodies
    never stall the event loop.
    """

    def __init__(self, root: str | Path, *, enabled: bool = True, max_bytes: int = 0) -> None:
        self._root = Path(root)
        self._enabled = enabled
        self._max_bytes = max_bytes
        self._usage: Optional[int] = None
        # Guards the usage counter, which worker threads update concurrently.
        self._usage_lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def _check_enabled(self) -> None:
        if not self._enabled:
            raise StorageUnavailableError(f"Cache storage is disabled. root={self._root}")

    def _generation_dir(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name.startswith("."):
            raise CacheStorageError(f"Invalid cache generation name: {name!r}")
        return self._root / name

    def _usage_bytes(self) -> int:
        if self._usage is None:
            total = 0
            if self._root.exists():
                for body_path in self._root.glob("*/*.body"):
                    total += body_path.stat().st_size
            self._usage = total
        return self._usage

    def _adjust_usage(self, delta: int) -> None:
        with self._usage_lock:
            if self._usage is not None:
                self._usage = max(0, self._usage + delta)

    async def generation_names(self) -> Sequence[str]:
        self._check_enabled()
        return await asyncio.to_thread(self._generation_names_sync)

    def _generation_names_sync(self) -> list[str]:
        if not self._root.exists():
            return []
        return sorted(p.name for p in self._root.iterdir() if p.is_dir() and not p.name.startswith("."))

    async def create_generation(self, name: str) -> None:
        self._check_enabled()
        directory = self._generation_dir(name)
        await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)

    async def delete_generation(self, name: str) -> bool:
        self._check_enabled()
        return await asyncio.to_thread(self._delete_generation_sync, self._generation_dir(name))

    def _delete_generation_sync(self, directory: Path) -> bool:
        if not directory.exists():
            return False
        freed = sum(p.stat().st_size for p in directory.glob("*.body"))
        shutil.rmtree(directory)
        self._adjust_usage(-freed)
        return True

    async def get(self, generation: str, key: str) -> Optional[CacheEntry]:
        self._check_enabled()
        return await asyncio.to_thread(self._get_sync, generation, self._generation_dir(generation), key)

    def _get_sync(self, generation: str, directory: Path, key: str) -> Optional[CacheEntry]:
        stem = _entry_stem(key)
        meta_path = directory / f"{stem}.json"
        body_path = directory / f"{stem}.body"
        if not meta_path.exists():
            return None
        try:
            payload = _read_metadata(meta_path)
            body = body_path.read_bytes()
            entry = decode_entry(payload, body)
        except (OSError, ValueError, TypeError, KeyError, AttributeError):
            logger.warning(
                "Discarding unreadable cache entry. generation=%s key=%s",
                generation,
                key,
                exc_info=True,
            )
            return None
        if entry.key != key:
            logger.warning("Cache entry key collision. generation=%s key=%s stored=%s", generation, key, entry.key)
            return None
        return entry

    async def put(self, generation: str, entry: CacheEntry) -> None:
        self._check_enabled()
        await asyncio.to_thread(self._put_sync, generation, self._generation_dir(generation), entry)

    def _put_sync(self, generation: str, directory: Path, entry: CacheEntry) -> None:
        stem = _entry_stem(entry.key)
        body_path = directory / f"{stem}.body"

        with self._usage_lock:
            previous_size = body_path.stat().st_size if body_path.exists() else 0
            if self._max_bytes:
                projected = self._usage_bytes() - previous_size + entry.size_bytes
                if projected > self._max_bytes:
                    raise QuotaExceededError(
                        f"Cache quota exceeded. generation={generation} key={entry.key} "
                        f"projected={projected} max_bytes={self._max_bytes}"
                    )
            if self._usage is not None:
                self._usage = max(0, self._usage + entry.size_bytes - previous_size)

        try:
            atomic_write_bytes(body_path, entry.response.body)
            atomic_write_json(directory / f"{stem}.json", encode_entry_metadata(entry))
        except OSError:
            self._adjust_usage(previous_size - entry.size_bytes)
            raise

    async def delete(self, generation: str, key: str) -> bool:
        self._check_enabled()
        return await asyncio.to_thread(self._delete_sync, self._generation_dir(generation), key)

    def _delete_sync(self, directory: Path, key: str) -> bool:
        stem = _entry_stem(key)
        meta_path = directory / f"{stem}.json"
        body_path = directory / f"{stem}.body"
        existed = meta_path.exists()
        meta_path.unlink(missing_ok=True)
        if body_path.exists():
            size = body_path.stat().st_size
            body_path.unlink()
            self._adjust_usage(-size)
        return existed

    async def keys(self, generation: str) -> Sequence[str]:
        self._check_enabled()
        return await asyncio.to_thread(self._keys_sync, self._generation_dir(generation))

    def _keys_sync(self, directory: Path) -> list[str]:
        if not directory.exists():
            return []
        records: list[tuple[str, str]] = []
        for meta_path in directory.glob("*.json"):
            try:
                payload = _read_metadata(meta_path)
                key = payload["key"]
                if not isinstance(key, str):
                    raise TypeError(f"key must be a string, got: {type(key).__name__}")
                stored_at = str(payload.get("stored_at", ""))
            except (OSError, ValueError, TypeError, KeyError):
                logger.warning("Skipping unreadable cache metadata. path=%s", meta_path)
                continue
            records.append((stored_at, key))
        return [key for _, key in sorted(records)]
