"""
Hop-by-hop header removal (RFC 7230, section 6.1).

These headers describe a single transport connection and must not be
forwarded to the upstream or back to the client.
"""

from typing import List

from gitproxy.proxy.headers import Headers, canonical_key

HOP_HEADERS = (
    "Connection",
    "Proxy-Connection",  # non-standard, still sent by libcurl
    "Keep-Alive",
    "Proxy-Authenticate",
    "Proxy-Authorization",
    "Te",
    "Trailer",  # not "Trailers", see RFC errata 4522
    "Transfer-Encoding",
    "Upgrade",
)


def connection_tokens(headers: Headers) -> List[str]:
    """Header names listed in the ``Connection`` value, in order."""
    tokens = []
    for value in headers.get_list("Connection"):
        for token in value.split(","):
            token = token.strip()
            if token:
                tokens.append(token)
    return tokens


def clean_hop_headers(headers: Headers) -> None:
    """Remove hop-by-hop headers in place, including those named in ``Connection``."""
    # Tokens must be read before "Connection" itself is deleted.
    for name in connection_tokens(headers):
        headers.delete(name)

    for name in HOP_HEADERS:
        headers.delete(name)


def announced_trailers(headers: Headers) -> List[str]:
    """Canonical names listed in the ``Trailer`` header."""
    names = []
    for value in headers.get_list("Trailer"):
        for name in value.split(","):
            name = name.strip()
            if name:
                names.append(canonical_key(name))
    return names
