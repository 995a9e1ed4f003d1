"""In-memory stand-ins for the client sink and the upstream used by the proxy tests."""

from typing import Iterable, List, Optional, Sequence, Tuple

from gitproxy.proxy.errors import UpstreamError
from gitproxy.proxy.headers import Headers, clone_header
from gitproxy.proxy.models import OutboundRequest, UpstreamResponse


async def async_chunks(chunks: Iterable[bytes]):
    for chunk in chunks:
        yield chunk


class RecordingSink:
    """
    ``ResponseSink`` that records everything written to it.

    ``fail_after`` makes writes raise once that many bytes were accepted,
    ``short_after`` makes the write that crosses that many bytes accept only
    the bytes up to it.
    """

    def __init__(
        self,
        fail_after: Optional[int] = None,
        short_after: Optional[int] = None,
    ):
        self.header = Headers()
        self.status_codes: List[int] = []
        self.committed_headers: Optional[Headers] = None
        self.body = bytearray()
        self.events: List[str] = []
        self.fail_after = fail_after
        self.short_after = short_after

    async def write_header(self, status_code: int) -> None:
        self.status_codes.append(status_code)
        self.committed_headers = clone_header(self.header)
        self.events.append(f"status:{status_code}")

    async def write(self, data: bytes) -> int:
        if self.fail_after is not None and len(self.body) + len(data) > self.fail_after:
            self.events.append("write-error")
            raise ConnectionResetError("client went away")
        if self.short_after is not None and len(self.body) + len(data) > self.short_after:
            data = data[: self.short_after - len(self.body)]
        self.body.extend(data)
        self.events.append(f"write:{len(data)}")
        return len(data)

    @property
    def status_code(self) -> Optional[int]:
        return self.status_codes[0] if self.status_codes else None


class FlushingSink(RecordingSink):
    async def flush(self) -> None:
        self.events.append("flush")


class FakeUpstreamClient:
    """Returns a canned ``UpstreamResponse`` or raises ``UpstreamError``."""

    def __init__(self, response: Optional[UpstreamResponse] = None, error: Optional[str] = None):
        self.response = response
        self.error = error
        self.requests: List[OutboundRequest] = []

    async def send(self, request: OutboundRequest) -> UpstreamResponse:
        self.requests.append(request)
        if self.error is not None:
            raise UpstreamError(request.url, self.error)
        return self.response


def make_upstream_response(
    status_code: int = 200,
    headers: Sequence[Tuple[str, str]] = (),
    chunks: Sequence[bytes] = (),
    declared_trailers: Sequence[str] = (),
    trailers_after_body: Sequence[Tuple[str, str]] = (),
    read_error: Optional[Exception] = None,
) -> UpstreamResponse:
    """
    Build an upstream response whose trailers are only filled in after the body.

    The returned response exposes ``closed``, the number of ``aclose`` calls.
    """
    trailer = Headers()
    for name in declared_trailers:
        trailer.declare(name)

    async def body():
        for chunk in chunks:
            yield chunk
        if read_error is not None:
            raise read_error
        for name, value in trailers_after_body:
            trailer.add(name, value)

    response = UpstreamResponse(
        status_code=status_code,
        headers=Headers(headers),
        body=body(),
        trailer=trailer,
    )
    response.closed = 0

    async def close():
        response.closed += 1

    response.close = close
    return response
