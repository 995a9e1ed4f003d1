from typing import AsyncIterable, NamedTuple, Optional, Protocol

from gitproxy.proxy.errors import ShortWriteError

# Peak memory of a relay is bounded by this, whatever the pack size.
COPY_BUFFER_SIZE = 32 * 1024


class BodyWriter(Protocol):
    async def write(self, data: bytes) -> int: ...


class CopyResult(NamedTuple):
    written: int
    error: Optional[Exception]


async def copy_response(
    dst: BodyWriter,
    src: AsyncIterable[bytes],
    buffer_size: int = COPY_BUFFER_SIZE,
) -> CopyResult:
    """
    Relay ``src`` into ``dst`` in pieces of at most ``buffer_size`` bytes.

    Stops at the end of ``src``, on the first write failure, on a short
    write, or on a read failure. The error is returned, not raised, since
    the response status has already been committed when this runs.
    Cancellation is not treated as an error and propagates.
    """
    written = 0
    chunks = src.__aiter__()
    while True:
        try:
            chunk = await chunks.__anext__()
        except StopAsyncIteration:
            return CopyResult(written, None)
        except Exception as e:
            return CopyResult(written, e)

        view = memoryview(chunk)
        for start in range(0, len(view), buffer_size):
            piece = view[start : start + buffer_size]
            try:
                accepted = await dst.write(bytes(piece))
            except Exception as e:
                return CopyResult(written, e)
            if accepted > 0:
                written += accepted
            if accepted != len(piece):
                return CopyResult(written, ShortWriteError(len(piece), accepted))
