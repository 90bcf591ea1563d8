"""
json_value.py

Tagged tree representation of a parsed JSON document, plus a compact
encoder that turns a tree back into JSON text.
Part of slk - a terminal reader for Slack conversations.

Objects keep their pairs in document order, duplicates included; lookup
returns the first pair whose key matches.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional


class Value:
    """
    Base class for every JSON node.

    The accessors return None when the node is not of the requested kind,
    so chains like ``resp.get("user").get("profile")`` need a guard at
    each step rather than isinstance checks.
    """

    def get(self, key: str) -> Optional["Value"]:
        """
        Look up a key on an object node.

        Args:
            key: The member name.

        Returns:
            The value of the first pair named ``key``, or None if the key is
            absent or this node is not an object.

        Example:
            ok = response.get("ok")
        """
        return None

    def as_str(self) -> Optional[str]:
        return None

    def as_bool(self) -> Optional[bool]:
        return None

    def as_number(self) -> Optional[float]:
        return None

    def as_array(self) -> Optional[list["Value"]]:
        return None

    def as_object(self) -> Optional[list[tuple[str, "Value"]]]:
        return None

    def to_python(self) -> Any:
        """Convert to plain dict/list/str/float/bool/None (later duplicate keys win)."""
        raise NotImplementedError


@dataclass
class Null(Value):
    def to_python(self) -> None:
        return None


@dataclass
class Bool(Value):
    value: bool

    def as_bool(self) -> Optional[bool]:
        return self.value

    def to_python(self) -> bool:
        return self.value


@dataclass
class Number(Value):
    value: float

    def as_number(self) -> Optional[float]:
        return self.value

    def to_python(self) -> float:
        return self.value


@dataclass
class String(Value):
    value: str

    def as_str(self) -> Optional[str]:
        return self.value

    def to_python(self) -> str:
        return self.value


@dataclass
class Array(Value):
    items: list[Value] = field(default_factory=list)

    def as_array(self) -> Optional[list[Value]]:
        return self.items

    def to_python(self) -> list:
        return [item.to_python() for item in self.items]


@dataclass
class Object(Value):
    pairs: list[tuple[str, Value]] = field(default_factory=list)

    def get(self, key: str) -> Optional[Value]:
        for name, value in self.pairs:
            if name == key:
                return value
        return None

    def as_object(self) -> Optional[list[tuple[str, Value]]]:
        return self.pairs

    def to_python(self) -> dict:
        return {name: value.to_python() for name, value in self.pairs}


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _encode_string(text: str) -> str:
    out = ['"']
    for ch in text:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def encode(value: Value) -> str:
    """
    Encode a Value tree as compact JSON text.

    Args:
        value: The tree to encode.

    Returns:
        JSON text that parses back to an equal tree.

    Raises:
        ValueError: If a Number is NaN or infinite, which JSON cannot express.

    Example:
        text = encode(Object([("ok", Bool(True))]))  # '{"ok":true}'
    """
    if isinstance(value, Null):
        return "null"
    if isinstance(value, Bool):
        return "true" if value.value else "false"
    if isinstance(value, Number):
        if not math.isfinite(value.value):
            raise ValueError(f"cannot encode non-finite number: {value.value!r}")
        return repr(float(value.value))
    if isinstance(value, String):
        return _encode_string(value.value)
    if isinstance(value, Array):
        return "[" + ",".join(encode(item) for item in value.items) + "]"
    if isinstance(value, Object):
        members = (f"{_encode_string(name)}:{encode(item)}" for name, item in value.pairs)
        return "{" + ",".join(members) + "}"
    raise TypeError(f"not a JSON value: {value!r}")
