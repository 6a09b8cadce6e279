"""Forward-only sources of numbered input lines."""
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, Optional, Union

from translate_json.errors import InputError, LineTooLongError

# 64 KiB, the usual scanner token limit
DEFAULT_MAX_LINE_LENGTH = 64 * 1024


@dataclass(frozen=True)
class Line:
    number: int
    data: bytes


def _strip_terminator(raw: bytes) -> bytes:
    # An unterminated last line still loses one trailing "\r".
    if raw.endswith(b"\n"):
        raw = raw[:-1]
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return raw


class LineSource:
    """
    Lazy, finite sequence of :class:`Line` records, numbered from 1.

    Terminators (``\\n``, optionally preceded by ``\\r``) are removed. A last
    line without a terminator is still produced, minus one trailing ``\\r``.
    A trailing terminator does not produce an extra empty line. Each source
    can be iterated once.
    """

    def __init__(self, raw_lines: Iterable[Union[bytes, str]], max_line_length: Optional[int] = None):
        self._raw_lines = raw_lines
        self.max_line_length = max_line_length
        self._consumed = False

    @classmethod
    def from_stream(cls, stream: BinaryIO, max_line_length: Optional[int] = None) -> "LineSource":
        """Read lines from a binary stream, bounded by ``max_line_length`` bytes."""
        if max_line_length is None:
            max_line_length = DEFAULT_MAX_LINE_LENGTH
        return cls(_read_bounded(stream, max_line_length), max_line_length)

    @classmethod
    def from_lines(cls, lines: Iterable[Union[bytes, str]]) -> "LineSource":
        """Wrap an externally supplied line reader. ``str`` items are UTF-8 encoded."""
        return cls(lines)

    def __iter__(self) -> Iterator[Line]:
        if self._consumed:
            raise InputError("line source can only be read once")
        self._consumed = True
        for number, raw in enumerate(self._raw_lines, 1):
            if isinstance(raw, str):
                raw = raw.encode("utf-8")
            elif not isinstance(raw, (bytes, bytearray)):
                raise InputError(f"expected bytes or str, got {type(raw).__name__}", number)
            data = _strip_terminator(bytes(raw))
            if self.max_line_length is not None and len(data) > self.max_line_length:
                raise LineTooLongError(self.max_line_length, number)
            yield Line(number, data)


def _read_bounded(stream: BinaryIO, max_line_length: int) -> Iterator[bytes]:
    # Read at most the limit plus room for "\r\n" so an oversized line is
    # detected without buffering all of it.
    number = 0
    while True:
        raw = stream.readline(max_line_length + 2)
        if not raw:
            return
        number += 1
        if not raw.endswith(b"\n") and len(raw) > max_line_length:
            raise LineTooLongError(max_line_length, number)
        yield raw
