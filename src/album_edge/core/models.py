from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Literal, Optional

from multidict import CIMultiDict, CIMultiDictProxy

RequestMode = Literal["navigate", "same-origin", "cors", "no-cors"]
RequestDestination = Literal[
    "",
    "document",
    "image",
    "audio",
    "video",
    "track",
    "script",
    "style",
    "font",
    "worker",
    "manifest",
]
ResponseType = Literal["basic", "cors", "opaque", "error"]

Headers = CIMultiDict[str]


def _freeze(headers: Optional[Headers]) -> CIMultiDictProxy[str]:
    return CIMultiDictProxy(CIMultiDict(headers or ()))


@dataclass(frozen=True, slots=True)
class EdgeRequest:
    """An intercepted page request, as seen by the routing engine."""

    url: str
    method: str = "GET"
    headers: CIMultiDictProxy[str] = field(default_factory=lambda: _freeze(None))
    mode: RequestMode = "cors"
    destination: RequestDestination = ""
    # Identifies the page window that issued the request; absent for background fetches.
    client_id: Optional[str] = None
    body: bytes = b""

    @classmethod
    def build(
        cls,
        url: str,
        *,
        method: str = "GET",
        headers: Optional[dict[str, str] | Headers] = None,
        mode: RequestMode = "cors",
        destination: RequestDestination = "",
        client_id: Optional[str] = None,
        body: bytes = b"",
    ) -> EdgeRequest:
        return cls(
            url=url,
            method=method.upper(),
            headers=_freeze(CIMultiDict(headers or {})),
            mode=mode,
            destination=destination,
            client_id=client_id,
            body=body,
        )

    @property
    def range_header(self) -> Optional[str]:
        return self.headers.get("Range")

    def with_mode(self, mode: RequestMode) -> EdgeRequest:
        return replace(self, mode=mode)

    def without_header(self, name: str) -> EdgeRequest:
        headers = CIMultiDict(self.headers)
        headers.popall(name, None)
        return replace(self, headers=_freeze(headers))


@dataclass(frozen=True, slots=True)
class EdgeResponse:
    status: int
    body: bytes = b""
    headers: CIMultiDictProxy[str] = field(default_factory=lambda: _freeze(None))
    status_text: str = ""
    response_type: ResponseType = "basic"
    url: str = ""

    @classmethod
    def build(
        cls,
        status: int,
        body: bytes = b"",
        *,
        headers: Optional[dict[str, str] | Headers] = None,
        status_text: str = "",
        response_type: ResponseType = "basic",
        url: str = "",
    ) -> EdgeResponse:
        return cls(
            status=status,
            body=body,
            headers=_freeze(CIMultiDict(headers or {})),
            status_text=status_text,
            response_type=response_type,
            url=url,
        )

    @classmethod
    def opaque(cls, url: str, body: bytes) -> EdgeResponse:
        """A cross-origin no-cors response: replayable whole, status and headers hidden."""
        return cls(status=0, body=body, response_type="opaque", url=url)

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299

    @property
    def is_opaque(self) -> bool:
        return self.response_type == "opaque"

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    def is_full_body(self) -> bool:
        """True when the body is a readable, complete 200 representation that can be sliced."""
        return self.status == 200 and not self.is_opaque
