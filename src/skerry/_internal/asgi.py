"""Typed ASGI definitions for the SSR service.

Raw ASGI aliases plus the small immutable request wrapper the service
pipeline works with. Callers never see these.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from skerry.errors import HTTPError

# Raw ASGI types
Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class HTTPRequest:
    """Frozen request metadata with a size-limited body reader."""

    method: str
    path: str
    headers: tuple[tuple[bytes, bytes], ...]
    _receive: Receive

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return the first value for a header (case-insensitive)."""
        key = name.lower().encode("latin-1")
        for raw_name, value in self.headers:
            if raw_name.lower() == key:
                return value.decode("latin-1")
        return default

    @property
    def content_length(self) -> int | None:
        value = self.header("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    async def body(self, *, limit: int) -> bytes:
        """Read the full body, rejecting it once it exceeds *limit* bytes.

        A declared ``Content-Length`` above the limit fails before any
        chunk is read, so oversized payloads are never partially processed.
        """
        declared = self.content_length
        if declared is not None and declared > limit:
            raise HTTPError(413, "Payload too large", kind="payload_too_large")

        chunks: list[bytes] = []
        received = 0
        while True:
            message = await self._receive()
            chunk = message.get("body", b"")
            if chunk:
                received += len(chunk)
                if received > limit:
                    raise HTTPError(413, "Payload too large", kind="payload_too_large")
                chunks.append(chunk)
            if not message.get("more_body", False):
                break
        return b"".join(chunks)

    @classmethod
    def from_scope(cls, scope: Scope, receive: Receive) -> "HTTPRequest":
        """Parse a raw ASGI HTTP scope into a request."""
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=tuple(scope.get("headers", ())),
            _receive=receive,
        )
