"""Synthetic responses served when neither network nor cache can answer."""

from __future__ import annotations

import json

from album_edge.core.models import EdgeResponse

DEFAULT_AUDIO_TYPE = "audio/mpeg"

_PLACEHOLDER_SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1" viewBox="0 0 1 1"></svg>'
)


def offline_unavailable(message: str = "Offline") -> EdgeResponse:
    return EdgeResponse.build(
        503,
        message.encode("utf-8"),
        headers={"Content-Type": "text/plain; charset=utf-8", "Cache-Control": "no-store"},
        status_text="Service Unavailable",
    )


def offline_json_marker() -> EdgeResponse:
    payload = json.dumps({"offline": True, "error": "unavailable"}).encode("utf-8")
    return EdgeResponse.build(
        503,
        payload,
        headers={"Content-Type": "application/json", "Cache-Control": "no-store"},
        status_text="Service Unavailable",
    )


def not_found(message: str = "Resource not found") -> EdgeResponse:
    return EdgeResponse.build(
        404,
        message.encode("utf-8"),
        headers={"Content-Type": "text/plain; charset=utf-8", "Cache-Control": "no-store"},
        status_text="Not Found",
    )


def bad_gateway(reason: str) -> EdgeResponse:
    return EdgeResponse.build(
        502,
        f"Upstream unreachable: {reason}".encode("utf-8"),
        headers={"Content-Type": "text/plain; charset=utf-8", "Cache-Control": "no-store"},
        status_text="Bad Gateway",
    )


def image_placeholder() -> EdgeResponse:
    return EdgeResponse.build(
        404,
        _PLACEHOLDER_SVG,
        headers={"Content-Type": "image/svg+xml", "Cache-Control": "no-store"},
        status_text="Not Found",
    )


def range_not_satisfiable(total: int) -> EdgeResponse:
    return EdgeResponse.build(
        416,
        b"",
        headers={"Content-Range": f"bytes */{total}", "Accept-Ranges": "bytes"},
        status_text="Range Not Satisfiable",
    )


def partial_content(body: bytes, *, start: int, end: int, total: int, content_type: str | None) -> EdgeResponse:
    return EdgeResponse.build(
        206,
        body,
        headers={
            "Content-Range": f"bytes {start}-{end}/{total}",
            "Content-Length": str(end - start + 1),
            "Accept-Ranges": "bytes",
            "Content-Type": content_type or DEFAULT_AUDIO_TYPE,
        },
        status_text="Partial Content",
    )
