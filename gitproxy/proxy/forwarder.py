"""
Relays one git-upload-pack exchange to a fixed upstream target.

Behaves like a reverse proxy for a single request: hop-by-hop headers are
stripped in both directions, the request body is passed through unread, the
response body is streamed back and trailers are carried across.

Trailer names are known before the body, trailer values only after it. When
the set of trailer keys changes while the body is read, the late keys cannot
have been announced and are written with ``TRAILER_PREFIX`` instead.
"""

import logging

from opentelemetry import trace

from gitproxy.proxy.copier import copy_response
from gitproxy.proxy.errors import UpstreamError
from gitproxy.proxy.headers import clone_header, copy_header
from gitproxy.proxy.hop_headers import clean_hop_headers
from gitproxy.proxy.models import InboundRequest, OutboundRequest
from gitproxy.proxy.sink import TRAILER_PREFIX, Flusher, ResponseSink
from gitproxy.proxy.upstream import UpstreamClient
from gitproxy.utils.exception_logging import log_exception_with_details
from gitproxy.utils.traced_requests import traced_request

logger = logging.getLogger("uvicorn.error")
tracer = trace.get_tracer(__name__)


async def forward_upload_pack(
    sink: ResponseSink,
    request: InboundRequest,
    target: str,
    client: UpstreamClient,
) -> None:
    """Forward ``request`` to ``target`` as a POST and relay the answer into ``sink``."""
    outreq = OutboundRequest(
        url=target, headers=clone_header(request.headers), body=request.body
    )
    clean_hop_headers(outreq.headers)

    with traced_request(
        tracer, "git_upload_pack", target, f"[GitProxy] Proxying git-upload-pack -> {target}"
    ) as span:
        try:
            res = await client.send(outreq)
        except UpstreamError as e:
            log_exception_with_details(logger, "[GitProxy] Upstream request failed.", e)
            span.set_attribute("proxy.error", "upstream_unreachable")
            span.set_attribute("proxy.status_code", 502)
            await sink.write_header(502)
            return

        span.set_attribute("proxy.status_code", res.status_code)

        clean_hop_headers(res.headers)
        copy_header(sink.header, res.headers)

        # "Trailer" was stripped as hop-by-hop, rebuild it from the declared names.
        announced = len(res.trailer)
        if announced:
            sink.header.add("Trailer", ", ".join(res.trailer.keys()))

        await sink.write_header(res.status_code)
        if announced and isinstance(sink, Flusher):
            # Commit to chunked encoding before a short body gets a Content-Length.
            await sink.flush()

        try:
            result = await copy_response(sink, res.body)
        finally:
            await res.aclose()

        span.set_attribute("proxy.bytes_written", result.written)
        if result.error is not None:
            span.set_attribute("proxy.error", type(result.error).__name__)
            log_exception_with_details(
                logger,
                f"[GitProxy] Body relay stopped after {result.written} bytes.",
                result.error,
                logging.WARNING,
            )

        if len(res.trailer) == announced:
            copy_header(sink.header, res.trailer)
            return

        for key, values in res.trailer.items():
            for value in values:
                sink.header.add(TRAILER_PREFIX + key, value)
