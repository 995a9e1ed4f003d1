from dataclasses import dataclass, field
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, Optional

from gitproxy.proxy.headers import Headers


@dataclass
class InboundRequest:
    """The client's request as the forwarder sees it."""

    headers: Headers
    body: AsyncIterable[bytes]


@dataclass
class OutboundRequest:
    url: str
    headers: Headers
    body: AsyncIterable[bytes]
    method: str = "POST"


@dataclass
class UpstreamResponse:
    """
    Upstream answer with its body not yet read.

    ``trailer`` holds the trailer names declared before the body. Clients
    able to read real trailer values fill or extend it once ``body`` is
    exhausted.
    """

    status_code: int
    headers: Headers
    body: AsyncIterator[bytes]
    trailer: Headers = field(default_factory=Headers)
    close: Optional[Callable[[], Awaitable[None]]] = None

    async def aclose(self) -> None:
        if self.close is not None:
            await self.close()
