import logging
from typing import Protocol

import httpx

from gitproxy.proxy.copier import COPY_BUFFER_SIZE
from gitproxy.proxy.errors import UpstreamError
from gitproxy.proxy.headers import Headers
from gitproxy.proxy.hop_headers import announced_trailers
from gitproxy.proxy.models import OutboundRequest, UpstreamResponse

logger = logging.getLogger("uvicorn.error")


class UpstreamClient(Protocol):
    async def send(self, request: OutboundRequest) -> UpstreamResponse: ...


class HTTPXUpstreamClient:
    """Issues outbound requests on a caller-owned ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, chunk_size: int = COPY_BUFFER_SIZE):
        self.client = client
        self.chunk_size = chunk_size

    async def send(self, request: OutboundRequest) -> UpstreamResponse:
        try:
            # httpx derives Host from the URL, as the transport should. Byte pairs
            # keep obs-text values intact, httpx would encode str values as ASCII.
            headers = [
                (name, value) for name, value in request.headers.raw() if name != b"Host"
            ]
            outbound = self.client.build_request(
                request.method, request.url, headers=headers, content=request.body
            )
            response = await self.client.send(outbound, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise UpstreamError(request.url, f"{type(e).__name__}: {e}") from e

        response_headers = Headers.from_raw(response.headers.raw)
        trailer = Headers()
        for name in announced_trailers(response_headers):
            trailer.declare(name)

        logger.debug(f"[GitProxy] Upstream answered {response.status_code} for {request.url}")
        return UpstreamResponse(
            status_code=response.status_code,
            headers=response_headers,
            body=response.aiter_raw(self.chunk_size),
            trailer=trailer,
            close=response.aclose,
        )
