"""
json_decoder.py

Recursive-descent JSON decoder. Every Slack API response, the token
exchange response and the on-disk client config pass through parse()
before anything reads a field out of them.
Part of slk - a terminal reader for Slack conversations.

One byte of lookahead picks the production; there is no backtracking.
Errors carry the byte offset at which they were detected.
"""

from __future__ import annotations

from typing import Union

from core.errors import ParseError
from core.json_value import Array, Bool, Null, Number, Object, String, Value

# Nesting bound; deeper documents are rejected instead of exhausting the stack.
MAX_DEPTH = 256

_WHITESPACE = frozenset(b" \t\n\r")
_DIGITS = frozenset(b"0123456789")
_NUMBER_START = frozenset(b"-0123456789")

_SIMPLE_ESCAPES = {
    ord('"'): b'"',
    ord("\\"): b"\\",
    ord("/"): b"/",
    ord("n"): b"\n",
    ord("r"): b"\r",
    ord("t"): b"\t",
}


def parse(text: Union[str, bytes]) -> Value:
    """
    Decode one JSON document.

    Args:
        text: JSON text, either as str or as UTF-8 encoded bytes. Offsets in
            errors are byte offsets into the UTF-8 encoding.

    Returns:
        The fully materialized Value tree.

    Raises:
        ParseError: If the text is not a single well-formed JSON value.

    Example:
        value = parse('{"ok": true}')
        value.get("ok").as_bool()  # True
    """
    if isinstance(text, str):
        data = text.encode("utf-8", "surrogatepass")
    else:
        data = bytes(text)
    parser = _Parser(data)
    value = parser.parse_value()
    parser.skip_whitespace()
    if parser.pos < len(data):
        raise parser.error("unexpected trailing content")
    return value


class _Parser:
    """Cursor over an immutable byte buffer; one instance per parse() call."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0
        self.depth = 0

    # -- productions --------------------------------------------------------

    def parse_value(self) -> Value:
        self.skip_whitespace()
        ch = self.peek()
        if ch == ord('"'):
            return String(self.parse_string())
        if ch == ord("{"):
            return self.parse_object()
        if ch == ord("["):
            return self.parse_array()
        if ch == ord("t") or ch == ord("f"):
            return self.parse_bool()
        if ch == ord("n"):
            return self.parse_null()
        if ch in _NUMBER_START:
            return self.parse_number()
        raise self.error(f"unexpected character: {_show(ch)}")

    def parse_object(self) -> Object:
        self.expect(ord("{"))
        self.enter()
        pairs: list[tuple[str, Value]] = []
        self.skip_whitespace()
        if self.peek_is(ord("}")):
            self.pos += 1
            self.depth -= 1
            return Object(pairs)
        while True:
            self.skip_whitespace()
            key = self.parse_string()
            self.skip_whitespace()
            self.expect(ord(":"))
            pairs.append((key, self.parse_value()))
            self.skip_whitespace()
            ch = self.peek()
            if ch == ord(","):
                self.pos += 1
                continue
            if ch == ord("}"):
                self.pos += 1
                self.depth -= 1
                return Object(pairs)
            raise self.error("expected ',' or '}' in object")

    def parse_array(self) -> Array:
        self.expect(ord("["))
        self.enter()
        items: list[Value] = []
        self.skip_whitespace()
        if self.peek_is(ord("]")):
            self.pos += 1
            self.depth -= 1
            return Array(items)
        while True:
            items.append(self.parse_value())
            self.skip_whitespace()
            ch = self.peek()
            if ch == ord(","):
                self.pos += 1
                continue
            if ch == ord("]"):
                self.pos += 1
                self.depth -= 1
                return Array(items)
            raise self.error("expected ',' or ']' in array")

    def parse_string(self) -> str:
        self.expect(ord('"'))
        start = self.pos
        out = bytearray()
        while True:
            ch = self.advance()
            if ch == ord('"'):
                break
            if ch != ord("\\"):
                out.append(ch)
                continue
            escaped = self.advance()
            simple = _SIMPLE_ESCAPES.get(escaped)
            if simple is not None:
                out += simple
            elif escaped == ord("u"):
                out += self.parse_unicode_escape().encode("utf-8")
            else:
                self.pos -= 1
                raise self.error(f"invalid escape: \\{_show(escaped, quote=False)}")
        try:
            return out.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(start + exc.start, "invalid UTF-8 in string") from None

    def parse_unicode_escape(self) -> str:
        start = self.pos - 2
        code = self.read_hex4()
        if 0xD800 <= code <= 0xDBFF:
            if not self.data.startswith(b"\\u", self.pos):
                raise ParseError(start, "unmatched surrogate")
            self.pos += 2
            low = self.read_hex4()
            if not 0xDC00 <= low <= 0xDFFF:
                raise ParseError(start, "unmatched surrogate")
            return chr(0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00))
        if 0xDC00 <= code <= 0xDFFF:
            raise ParseError(start, "unmatched surrogate")
        return chr(code)

    def read_hex4(self) -> int:
        code = 0
        for _ in range(4):
            ch = self.peek()
            if ord("0") <= ch <= ord("9"):
                digit = ch - ord("0")
            elif ord("a") <= ch <= ord("f"):
                digit = ch - ord("a") + 10
            elif ord("A") <= ch <= ord("F"):
                digit = ch - ord("A") + 10
            else:
                raise self.error("invalid unicode escape hex digit")
            code = code * 16 + digit
            self.pos += 1
        return code

    def parse_number(self) -> Number:
        start = self.pos
        if self.peek_is(ord("-")):
            self.pos += 1
        self.consume_digits()
        if self.peek_is(ord(".")):
            self.pos += 1
            self.consume_digits()
        if self.peek_is(ord("e")) or self.peek_is(ord("E")):
            self.pos += 1
            if self.peek_is(ord("+")) or self.peek_is(ord("-")):
                self.pos += 1
            self.consume_digits()
        return Number(float(self.data[start:self.pos].decode("ascii")))

    def consume_digits(self) -> None:
        if self.pos >= len(self.data) or self.data[self.pos] not in _DIGITS:
            raise self.error("expected digit")
        while self.pos < len(self.data) and self.data[self.pos] in _DIGITS:
            self.pos += 1

    def parse_bool(self) -> Bool:
        if self.data.startswith(b"true", self.pos):
            self.pos += 4
            return Bool(True)
        if self.data.startswith(b"false", self.pos):
            self.pos += 5
            return Bool(False)
        raise self.error("expected 'true' or 'false'")

    def parse_null(self) -> Null:
        if self.data.startswith(b"null", self.pos):
            self.pos += 4
            return Null()
        raise self.error("expected 'null'")

    # -- cursor helpers -----------------------------------------------------

    def enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise self.error("maximum nesting depth exceeded")

    def skip_whitespace(self) -> None:
        data = self.data
        while self.pos < len(data) and data[self.pos] in _WHITESPACE:
            self.pos += 1

    def peek(self) -> int:
        if self.pos >= len(self.data):
            raise self.error("unexpected end of input")
        return self.data[self.pos]

    def peek_is(self, ch: int) -> bool:
        return self.pos < len(self.data) and self.data[self.pos] == ch

    def advance(self) -> int:
        ch = self.peek()
        self.pos += 1
        return ch

    def expect(self, expected: int) -> None:
        ch = self.peek()
        if ch != expected:
            raise self.error(f"expected {_show(expected)}, found {_show(ch)}")
        self.pos += 1

    def error(self, reason: str) -> ParseError:
        return ParseError(self.pos, reason)


def _show(ch: int, quote: bool = True) -> str:
    """Render a byte for an error message."""
    text = chr(ch) if 0x20 <= ch < 0x7F else f"\\x{ch:02x}"
    return f"'{text}'" if quote else text
