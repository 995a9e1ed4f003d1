"""
Client-facing response sink.

The forwarder talks to the client through a ``ResponseSink``: a mutable
header collection, a status write that commits the headers, body writes
and an optional flush. Header values added after the status has been
written become trailers when their name was announced in ``Trailer`` or
when the name carries ``TRAILER_PREFIX``.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, runtime_checkable

from gitproxy.proxy.headers import Headers, clone_header
from gitproxy.proxy.hop_headers import announced_trailers

logger = logging.getLogger("uvicorn.error")

# Marks a header written after the body as a trailer that was not announced.
TRAILER_PREFIX = "Trailer:"

TRAILERS_EXTENSION = "http.response.trailers"

Send = Callable[[Dict[str, Any]], Awaitable[None]]
DisconnectCheck = Callable[[], Awaitable[bool]]


class ResponseSink(Protocol):
    @property
    def header(self) -> Headers: ...

    async def write_header(self, status_code: int) -> None: ...

    async def write(self, data: bytes) -> int: ...


@runtime_checkable
class Flusher(Protocol):
    async def flush(self) -> None: ...


class ASGIResponseSink:
    """
    ``ResponseSink`` over an ASGI ``send`` callable.

    Servers may drop messages silently once the client is gone, so body
    writes consult ``is_disconnected`` (typically ``Request.is_disconnected``)
    and fail instead of reporting bytes that never left the process.
    """

    def __init__(
        self,
        scope: Dict[str, Any],
        send: Send,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> None:
        self._send = send
        self._is_disconnected = is_disconnected
        self._header = Headers()
        self._committed: Optional[Headers] = None
        self._announced: list = []
        self._finished = False
        self.status_code: Optional[int] = None
        self.trailers_supported = TRAILERS_EXTENSION in (scope.get("extensions") or {})

    @property
    def header(self) -> Headers:
        return self._header

    @property
    def committed(self) -> bool:
        return self._committed is not None

    async def write_header(self, status_code: int) -> None:
        if self.committed:
            logger.warning(
                f"[GitProxy] Superfluous status {status_code}, response already started with {self.status_code}"
            )
            return
        self.status_code = status_code
        self._committed = clone_header(self._header)
        self._announced = announced_trailers(self._header)
        await self._send(
            {
                "type": "http.response.start",
                "status": status_code,
                "headers": self._header.raw(),
                "trailers": bool(self._announced) and self.trailers_supported,
            }
        )

    async def write(self, data: bytes) -> int:
        if not self.committed:
            await self.write_header(200)
        if not data:
            return 0
        if self._is_disconnected is not None and await self._is_disconnected():
            raise ConnectionResetError("client disconnected")
        await self._send({"type": "http.response.body", "body": data, "more_body": True})
        return len(data)

    async def flush(self) -> None:
        if not self.committed:
            await self.write_header(200)
        await self._send({"type": "http.response.body", "body": b"", "more_body": True})

    def trailers(self) -> Headers:
        """Trailer entries added since the status was written."""
        trailers = Headers()
        if self._committed is None:
            return trailers
        for name, values in self._header.items():
            if name.startswith(TRAILER_PREFIX):
                for value in values:
                    trailers.add(name[len(TRAILER_PREFIX) :], value)
            elif name in self._announced:
                before = len(self._committed.get_list(name))
                for value in values[before:]:
                    trailers.add(name, value)
        return trailers

    async def finish(self) -> None:
        """End the body and deliver trailers when the server supports them."""
        if self._finished:
            return
        if not self.committed:
            await self.write_header(200)
        self._finished = True
        await self._send({"type": "http.response.body", "body": b"", "more_body": False})

        trailers = self.trailers()
        if self._announced and self.trailers_supported:
            await self._send(
                {
                    "type": "http.response.trailers",
                    "headers": trailers.raw(),
                    "more_trailers": False,
                }
            )
        elif len(trailers):
            logger.debug(
                f"[GitProxy] Server does not support trailers, dropping {trailers.keys()}"
            )
