from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from multidict import CIMultiDict

from album_edge.core.models import EdgeResponse

SchemaVersion = 1


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: str
    response: EdgeResponse
    stored_at: str

    @property
    def size_bytes(self) -> int:
        return len(self.response.body)


def encode_entry_metadata(entry: CacheEntry) -> dict:
    response = entry.response
    return {
        "schema_version": SchemaVersion,
        "key": entry.key,
        "stored_at": entry.stored_at,
        "status": response.status,
        "status_text": response.status_text,
        "response_type": response.response_type,
        "url": response.url,
        "headers": [[name, value] for name, value in response.headers.items()],
        "body_size": len(response.body),
    }


def decode_entry(payload: Any, body: bytes) -> CacheEntry:
    """
    Rebuild an entry from its metadata record and body.

    Raises ``ValueError`` for any record that is not a well-formed entry, including
    valid JSON of the wrong shape.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Cache entry metadata must be an object, got: {type(payload).__name__}")
    try:
        return _decode_record(payload, body)
    except (TypeError, KeyError, AttributeError) as e:
        raise ValueError(f"Malformed cache entry metadata: {e!r}") from e


def _decode_record(payload: dict, body: bytes) -> CacheEntry:
    if int(payload.get("schema_version", SchemaVersion)) != SchemaVersion:
        raise ValueError(f"Unsupported cache entry schema: {payload.get('schema_version')}")
    expected = payload.get("body_size")
    if expected is not None and int(expected) != len(body):
        raise ValueError(f"Cache entry body is truncated. key={payload.get('key')}")
    headers: CIMultiDict[str] = CIMultiDict()
    for name, value in payload.get("headers", []):
        headers.add(name, value)
    response = EdgeResponse.build(
        int(payload["status"]),
        body,
        headers=headers,
        status_text=payload.get("status_text", ""),
        response_type=payload.get("response_type", "basic"),
        url=payload.get("url", ""),
    )
    key = payload["key"]
    if not isinstance(key, str):
        raise TypeError(f"key must be a string, got: {type(key).__name__}")
    return CacheEntry(key=key, response=response, stored_at=str(payload.get("stored_at", "")))
