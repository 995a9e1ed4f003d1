"""
Multi-valued, case-insensitive HTTP header collection.

Header names are canonicalized on every access (``content-type`` becomes
``Content-Type``), each name maps to an ordered list of values, and a name may
be present with no values at all. The latter is how trailers are declared
before the body has been read.
"""

import string
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

# RFC 7230 tchar
_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")


def canonical_key(name: str) -> str:
    """
    Canonical form of a header name.

    The first letter and every letter following a hyphen are upper-cased,
    the rest lower-cased. Names that are not valid tokens are returned
    unchanged so prefixed trailer keys like ``Trailer:Foo`` survive.
    """
    if not name or any(ch not in _TOKEN_CHARS for ch in name):
        return name
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


class Headers:
    """Ordered mapping of canonical header name to a list of values."""

    def __init__(self, items: Optional[Iterable[Tuple[str, str]]] = None) -> None:
        self._values: Dict[str, List[str]] = {}
        if items:
            for name, value in items:
                self.add(name, value)

    @classmethod
    def from_raw(cls, raw: Iterable[Tuple[bytes, bytes]]) -> "Headers":
        """Build from ASGI-style ``(name, value)`` byte pairs."""
        return cls(
            (name.decode("latin-1"), value.decode("latin-1")) for name, value in raw
        )

    def raw(self) -> List[Tuple[bytes, bytes]]:
        """Flatten to ASGI-style byte pairs, keys without values are skipped."""
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in self.multi_items()
        ]

    def add(self, name: str, value: str) -> None:
        self._values.setdefault(canonical_key(name), []).append(value)

    def set(self, name: str, value: str) -> None:
        self._values[canonical_key(name)] = [value]

    def declare(self, name: str) -> None:
        """Register ``name`` without a value, keeping any existing values."""
        self._values.setdefault(canonical_key(name), [])

    def get(self, name: str, default: str = "") -> str:
        """First value for ``name``, or ``default``."""
        values = self._values.get(canonical_key(name))
        return values[0] if values else default

    def get_list(self, name: str) -> List[str]:
        return list(self._values.get(canonical_key(name), ()))

    def delete(self, name: str) -> None:
        self._values.pop(canonical_key(name), None)

    def keys(self) -> List[str]:
        return list(self._values)

    def items(self) -> Iterator[Tuple[str, List[str]]]:
        for name, values in self._values.items():
            yield name, values

    def multi_items(self) -> Iterator[Tuple[str, str]]:
        for name, values in self._values.items():
            for value in values:
                yield name, value

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and canonical_key(name) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Headers({self._values!r})"


def clone_header(headers: Headers) -> Headers:
    """Deep copy: a new collection with a new value list per key."""
    cloned = Headers()
    for name, values in headers.items():
        cloned._values[name] = list(values)
    return cloned


def copy_header(dst: Headers, src: Headers) -> None:
    """Append every value of ``src`` to ``dst``, never replacing entries."""
    for name, values in list(src.items()):
        for value in list(values):
            dst.add(name, value)
