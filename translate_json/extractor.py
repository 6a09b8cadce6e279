"""
Line-level recognition of translatable JSON string values.

Only the shapes a multi-line JSON pretty-printer emits for leaf strings are
recognised, so that everything else on the line can be written back as-is:

    "value"
    "value",
    "key": "value"
    "key": "value",

Any other line yields no candidate and is copied through unchanged.
"""
import json
from dataclasses import dataclass
from typing import Optional, Tuple

from translate_json.errors import InputError

# JSON insignificant whitespace (RFC 8259, section 2)
JSON_WHITESPACE = b" \t\r\n"

_QUOTE = 0x22
_BACKSLASH = 0x5C
_COMMA = 0x2C
_COLON = 0x3A


@dataclass(frozen=True)
class Candidate:
    """A JSON string literal selected for translation.

    ``offset`` and ``length`` are the byte span of the encoded literal,
    quotes included, within the line it was found on.
    """
    offset: int
    length: int
    value: str

    @property
    def end(self) -> int:
        return self.offset + self.length


def _skip_whitespace(line: bytes, pos: int) -> int:
    size = len(line)
    while pos < size and line[pos] in JSON_WHITESPACE:
        pos += 1
    return pos


def _is_quote(line: bytes, pos: int) -> bool:
    return pos < len(line) and line[pos] == _QUOTE


def decode_string_literal(line: bytes, offset: int, line_number: Optional[int] = None) -> Tuple[str, int]:
    """
    Decode the JSON string literal that starts at ``line[offset]``.

    Args:
        line: The raw line.
        offset: Index of the opening double quote.
        line_number: Used for error reporting only.

    Returns:
        Tuple[str, int]: The decoded value and the encoded length in bytes,
        both quotes included.

    Raises:
        InputError: If the literal is unterminated or not valid JSON.
    """
    size = len(line)
    end = offset + 1
    while end < size:
        byte = line[end]
        if byte == _BACKSLASH:
            end += 2
            continue
        if byte == _QUOTE:
            break
        end += 1
    else:
        raise InputError(f"unterminated string literal at offset {offset}", line_number)

    literal = line[offset:end + 1]
    try:
        # Invalid UTF-8 becomes U+FFFD rather than failing the whole run.
        value = json.loads(literal.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as exc:
        raise InputError(f"invalid string literal at offset {offset}: {exc}", line_number) from exc

    return value, len(literal)


def _ends_value(line: bytes, pos: int) -> bool:
    """True if only whitespace, or a comma then whitespace, follows ``pos``."""
    size = len(line)
    if pos == size:
        return True
    if line[pos] == _COMMA:
        return _skip_whitespace(line, pos + 1) == size
    return False


def extract_candidate(line: bytes, line_number: Optional[int] = None) -> Optional[Candidate]:
    """
    Find the translatable string value on a single line, if there is one.

    Args:
        line: The raw line, without its terminator.
        line_number: Used for error reporting only.

    Returns:
        Optional[Candidate]: The candidate span and decoded value, or None if
        the line must be written unchanged.

    Raises:
        InputError: If the line starts with a string literal (or has one after
        a key) that cannot be decoded.
    """
    offset = _skip_whitespace(line, 0)
    if not _is_quote(line, offset):
        return None

    value, length = decode_string_literal(line, offset, line_number)
    rest = _skip_whitespace(line, offset + length)

    # bare value, last array element or array element followed by more
    if _ends_value(line, rest):
        return Candidate(offset, length, value)

    if line[rest] != _COLON:
        return None

    # the first literal was an object key
    offset = _skip_whitespace(line, rest + 1)
    if not _is_quote(line, offset):
        return None

    value, length = decode_string_literal(line, offset, line_number)
    if _ends_value(line, _skip_whitespace(line, offset + length)):
        return Candidate(offset, length, value)

    return None
