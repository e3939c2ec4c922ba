from __future__ import annotations

from yarl import URL

_HTTP_SCHEMES = frozenset({"http", "https"})


def normalize_url(url: str, *, ignore_search: bool = False) -> str:
    """Return the cache key for ``url``: fragment removed, query kept unless ``ignore_search``."""
    parsed = URL(url).with_fragment(None)
    if ignore_search:
        parsed = parsed.with_query(None)
    return str(parsed)


def resolve_url(base: str, url: str) -> str:
    return str(URL(base).join(URL(url)).with_fragment(None))


def is_http_url(url: str) -> bool:
    try:
        return URL(url).scheme in _HTTP_SCHEMES
    except ValueError:
        return False


def same_origin(a: str, b: str) -> bool:
    return URL(a).origin() == URL(b).origin()


def url_path(url: str) -> str:
    return URL(url).path


def rebase_url(url: str, *, scope: str, upstream: str) -> str:
    """Map a URL under ``scope`` onto ``upstream``; URLs outside the scope are returned unchanged."""
    if not url.startswith(scope):
        return url
    return upstream + url[len(scope) :]
