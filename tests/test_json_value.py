"""Tests for the JSON value model and encoder."""

import math

import pytest

from core.json_decoder import parse
from core.json_value import Array, Bool, Null, Number, Object, String, encode


class TestLookup:
    """get() and the typed accessors."""

    def test_get_returns_first_match(self):
        value = Object([("a", Number(1.0)), ("b", Null()), ("a", Number(2.0))])
        assert value.get("a") == Number(1.0)
        assert value.get("b") == Null()

    def test_get_missing_key(self):
        assert parse('{"a": 1}').get("b") is None

    def test_get_on_non_object(self):
        assert parse("42").get("key") is None
        assert parse("[1]").get("0") is None

    def test_accessors_match_kind_only(self):
        assert String("x").as_str() == "x"
        assert String("x").as_bool() is None
        assert Bool(False).as_bool() is False
        assert Bool(True).as_str() is None
        assert Number(1.5).as_number() == 1.5
        assert Array([Null()]).as_array() == [Null()]
        assert Object([]).as_object() == []
        assert Null().as_array() is None

    def test_kinds_are_distinct(self):
        assert Bool(True) != Number(1.0)
        assert Array([]) != Object([])

    def test_to_python(self):
        value = parse('{"ok": true, "n": [1, null, "x"], "o": {"k": false}}')
        assert value.to_python() == {"ok": True, "n": [1.0, None, "x"], "o": {"k": False}}


class TestEncode:
    """encode() output parses back to an equal tree."""

    @pytest.mark.parametrize(
        "text",
        [
            "null",
            "true",
            "-0.5",
            "1e300",
            "2.5E-7",
            '""',
            '"quote \\" slash \\\\ nl \\n tab \\t"',
            '"caf\xe9 日本"',
            "[]",
            "{}",
            '[1, [2, [3, {"deep": [true, false, null]}]]]',
            '{"a": 1, "a": 2, "b": {"c": "d"}}',
            '{"ok": true, "messages": [{"user": "U1", "text": "hi", "ts": "1770689887.565249"}]}',
        ],
    )
    def test_round_trip(self, text):
        value = parse(text)
        assert parse(encode(value)) == value

    def test_control_characters_are_escaped(self):
        encoded = encode(String("a\x01b"))
        assert "\x01" not in encoded
        assert parse(encoded) == String("a\x01b")

    def test_compact_output(self):
        assert encode(Object([("ok", Bool(True)), ("n", Array([Number(1.0)]))])) == (
            '{"ok":true,"n":[1.0]}'
        )

    def test_non_finite_numbers_rejected(self):
        with pytest.raises(ValueError):
            encode(Number(math.inf))
        with pytest.raises(ValueError):
            encode(Number(math.nan))
