import logging

import httpx
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response

from gitproxy.proxy.forwarder import forward_upload_pack
from gitproxy.proxy.headers import Headers
from gitproxy.proxy.models import InboundRequest
from gitproxy.proxy.sink import ASGIResponseSink
from gitproxy.proxy.upstream import HTTPXUpstreamClient
from gitproxy.vars import (
    GIT_UPSTREAM_URL,
    PROXY_CONNECT_TIMEOUT,
    PROXY_PREFIX,
    PROXY_TIMEOUT,
    PROXY_VERIFY_TLS,
)

router = APIRouter()
logger = logging.getLogger("uvicorn.error")

if PROXY_PREFIX:
    router.prefix = PROXY_PREFIX
    logger.info(f"Using PROXY_PREFIX: {PROXY_PREFIX}")


def get_target_url(repo_path: str, query: str = "") -> str:
    """Upstream git-upload-pack URL for ``repo_path``, query string preserved."""
    target = f"{GIT_UPSTREAM_URL}/{repo_path.strip('/')}/git-upload-pack"
    if query:
        target = f"{target}?{query}"
    return target


def create_upstream_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(PROXY_TIMEOUT, connect=PROXY_CONNECT_TIMEOUT),
        verify=PROXY_VERIFY_TLS,
        follow_redirects=False,
    )


class UploadPackResponse(Response):
    """
    Response that relays the exchange straight onto the ASGI ``send`` channel.

    Status, headers, body and trailers all come from the upstream, so nothing
    is prepared up front.
    """

    def __init__(self, request: Request, target: str):
        super().__init__()
        self.request = request
        self.target = target

    async def __call__(self, scope, receive, send) -> None:
        sink = ASGIResponseSink(scope, send, self.request.is_disconnected)
        inbound = InboundRequest(
            headers=Headers.from_raw(self.request.scope["headers"]),
            body=self.request.stream(),
        )
        async with create_upstream_client() as client:
            await forward_upload_pack(
                sink, inbound, self.target, HTTPXUpstreamClient(client)
            )
        await sink.finish()


@router.post("/{repo_path:path}/git-upload-pack")
async def git_upload_pack(request: Request, repo_path: str):
    """Proxy a smart-HTTP fetch to the upstream repository."""
    if not GIT_UPSTREAM_URL:
        raise HTTPException(
            status_code=503,
            detail="GIT_UPSTREAM_URL is not configured. Proxy is unavailable.",
        )
    return UploadPackResponse(request, get_target_url(repo_path, request.url.query))


@router.get("/health")
async def health():
    return {"status": "ok"}
