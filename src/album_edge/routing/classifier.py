from __future__ import annotations

import re
from enum import Enum

from album_edge.core.models import EdgeRequest
from album_edge.core.urls import is_http_url, same_origin, url_path


class RequestClass(str, Enum):
    NAVIGATION = "navigation"
    JSON = "json"
    IMAGE = "image"
    AUDIO = "audio"
    STATIC = "static"
    OTHER = "other"


_IMAGE_EXT = re.compile(r"\.(?:png|jpe?g|webp|avif|gif|svg|ico)$", re.IGNORECASE)
_AUDIO_EXT = re.compile(r"\.(?:mp3|m4a|aac|ogg|oga|opus|wav|flac)$", re.IGNORECASE)
_STATIC_EXT = re.compile(r"\.(?:js|mjs|css|woff2?|ttf|otf)$", re.IGNORECASE)
_FONT_EXT = re.compile(r"\.(?:woff2?|ttf|otf|eot)$", re.IGNORECASE)
_HTML_EXT = re.compile(r"\.html?$", re.IGNORECASE)

_AUDIO_DESTINATIONS = frozenset({"audio", "video", "track"})
_STATIC_DESTINATIONS = frozenset({"script", "style", "font", "worker"})


def is_interceptable(request: EdgeRequest) -> bool:
    """Only http(s) GET requests are routed; everything else goes straight to the network."""
    return request.method == "GET" and is_http_url(request.url)


def _accepts(request: EdgeRequest, media_type: str) -> bool:
    return media_type in request.headers.get("Accept", "").lower()


def _is_navigation(request: EdgeRequest, path: str, scope: str) -> bool:
    if request.mode == "navigate":
        return True
    if not same_origin(request.url, scope):
        return False
    if request.destination == "document":
        return True
    # A subresource with a known destination is never a document load.
    if request.destination:
        return False
    return _accepts(request, "text/html") or path.endswith("/") or bool(_HTML_EXT.search(path))


def classify(request: EdgeRequest, scope: str) -> RequestClass:
    path = url_path(request.url)

    if _is_navigation(request, path, scope):
        return RequestClass.NAVIGATION
    if path.lower().endswith(".json") or _accepts(request, "application/json"):
        return RequestClass.JSON

    destination = request.destination
    if destination == "image" or (not destination and _IMAGE_EXT.search(path)):
        return RequestClass.IMAGE
    if destination in _AUDIO_DESTINATIONS or (not destination and _AUDIO_EXT.search(path)):
        return RequestClass.AUDIO
    if destination in _STATIC_DESTINATIONS or (not destination and _STATIC_EXT.search(path)):
        return RequestClass.STATIC
    return RequestClass.OTHER


def is_font(request: EdgeRequest) -> bool:
    if request.destination == "font":
        return True
    return not request.destination and bool(_FONT_EXT.search(url_path(request.url)))
