"""Exceptions raised while relaying a git-upload-pack exchange."""


class ProxyError(Exception):
    """Base class for proxy failures local to a single exchange."""


class UpstreamError(ProxyError):
    """The upstream request could not be built or issued."""

    def __init__(self, target: str, message: str):
        super().__init__(f"{message} (target: {target})")
        self.target = target


class ShortWriteError(ProxyError):
    """The destination accepted fewer bytes than it was given."""

    def __init__(self, expected: int, written: int):
        super().__init__(f"short write: {written} of {expected} bytes accepted")
        self.expected = expected
        self.written = written
