import pytest

from gitproxy.proxy.copier import copy_response
from gitproxy.proxy.headers import Headers
from gitproxy.proxy.sink import (
    TRAILER_PREFIX,
    TRAILERS_EXTENSION,
    ASGIResponseSink,
    Flusher,
)


class Recorder:
    def __init__(self):
        self.messages = []

    async def __call__(self, message):
        self.messages.append(message)

    def of_type(self, message_type):
        return [m for m in self.messages if m["type"] == message_type]


def _scope(trailers=True):
    extensions = {TRAILERS_EXTENSION: {}} if trailers else {}
    return {"type": "http", "extensions": extensions}


def test_asgi_sink_supports_flush():
    assert isinstance(ASGIResponseSink(_scope(), Recorder()), Flusher)


@pytest.mark.asyncio
async def test_plain_response_messages():
    send = Recorder()
    sink = ASGIResponseSink(_scope(), send)
    sink.header.add("Content-Type", "application/x-git-upload-pack-result")

    await sink.write_header(200)
    assert await sink.write(b"PACK") == 4
    await sink.finish()

    assert send.messages == [
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [(b"Content-Type", b"application/x-git-upload-pack-result")],
            "trailers": False,
        },
        {"type": "http.response.body", "body": b"PACK", "more_body": True},
        {"type": "http.response.body", "body": b"", "more_body": False},
    ]


@pytest.mark.asyncio
async def test_write_commits_default_status():
    send = Recorder()
    sink = ASGIResponseSink(_scope(), send)

    await sink.write(b"x")

    assert sink.status_code == 200
    assert send.messages[0]["type"] == "http.response.start"


@pytest.mark.asyncio
async def test_empty_write_sends_nothing():
    send = Recorder()
    sink = ASGIResponseSink(_scope(), send)
    await sink.write_header(200)

    assert await sink.write(b"") == 0
    assert send.of_type("http.response.body") == []


@pytest.mark.asyncio
async def test_second_status_is_ignored(caplog):
    send = Recorder()
    sink = ASGIResponseSink(_scope(), send)

    await sink.write_header(200)
    await sink.write_header(502)

    assert sink.status_code == 200
    assert len(send.of_type("http.response.start")) == 1
    assert "Superfluous status 502" in caplog.text


@pytest.mark.asyncio
async def test_finish_without_status_sends_empty_200():
    send = Recorder()
    sink = ASGIResponseSink(_scope(), send)

    await sink.finish()
    await sink.finish()

    assert send.messages[0]["status"] == 200
    assert send.of_type("http.response.body") == [
        {"type": "http.response.body", "body": b"", "more_body": False}
    ]


@pytest.mark.asyncio
async def test_headers_added_after_status_become_trailers():
    send = Recorder()
    sink = ASGIResponseSink(_scope(), send)
    sink.header.add("Trailer", "X-Checksum")
    sink.header.add("X-Other", "1")

    await sink.write_header(200)
    await sink.flush()
    await sink.write(b"PACK")
    sink.header.add("X-Checksum", "sha1-abc")
    sink.header.add("X-Other", "2")
    await sink.finish()

    start = send.of_type("http.response.start")[0]
    assert start["trailers"] is True
    assert (b"Trailer", b"X-Checksum") in start["headers"]
    assert send.messages[1] == {"type": "http.response.body", "body": b"", "more_body": True}
    assert send.messages[-1] == {
        "type": "http.response.trailers",
        "headers": [(b"X-Checksum", b"sha1-abc")],
        "more_trailers": False,
    }


@pytest.mark.asyncio
async def test_prefixed_headers_become_trailers():
    send = Recorder()
    sink = ASGIResponseSink(_scope(), send)
    sink.header.add("Trailer", "X-Checksum")

    await sink.write_header(200)
    sink.header.add(TRAILER_PREFIX + "X-Checksum", "sha1-abc")
    sink.header.add(TRAILER_PREFIX + "X-Late", "one")
    sink.header.add(TRAILER_PREFIX + "X-Late", "two")
    await sink.finish()

    assert sink.trailers() == Headers(
        [("X-Checksum", "sha1-abc"), ("X-Late", "one"), ("X-Late", "two")]
    )
    assert send.messages[-1]["type"] == "http.response.trailers"


@pytest.mark.asyncio
async def test_trailers_dropped_when_server_lacks_extension():
    send = Recorder()
    sink = ASGIResponseSink(_scope(trailers=False), send)
    sink.header.add("Trailer", "X-Checksum")

    await sink.write_header(200)
    sink.header.add("X-Checksum", "sha1-abc")
    await sink.finish()

    assert send.of_type("http.response.start")[0]["trailers"] is False
    assert send.of_type("http.response.trailers") == []
    assert send.messages[-1] == {"type": "http.response.body", "body": b"", "more_body": False}


def test_no_trailers_before_commit():
    sink = ASGIResponseSink(_scope(), Recorder())
    sink.header.add(TRAILER_PREFIX + "X-Late", "one")

    assert len(sink.trailers()) == 0


class DisconnectAfter:
    """Reports the client as gone once ``polls`` checks have passed."""

    def __init__(self, polls):
        self.polls = polls
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.calls > self.polls


@pytest.mark.asyncio
async def test_write_fails_once_client_disconnects():
    send = Recorder()
    sink = ASGIResponseSink(_scope(), send, DisconnectAfter(1))
    await sink.write_header(200)

    assert await sink.write(b"PACK") == 4
    with pytest.raises(ConnectionResetError):
        await sink.write(b"MORE")

    assert send.of_type("http.response.body") == [
        {"type": "http.response.body", "body": b"PACK", "more_body": True}
    ]


@pytest.mark.asyncio
async def test_disconnect_stops_relay_before_source_is_drained():
    produced = []

    async def upstream_body():
        for i in range(100):
            produced.append(i)
            yield b"x" * 1024

    sink = ASGIResponseSink(_scope(), Recorder(), DisconnectAfter(2))
    await sink.write_header(200)

    result = await copy_response(sink, upstream_body())

    assert isinstance(result.error, ConnectionResetError)
    assert result.written == 2048
    assert len(produced) == 3
