"""Tests for extracting and formatting Slack messages."""

import pytest

from core.errors import ProviderError
from core.json_decoder import parse
from slack_api.messages import (
    SlackConversation,
    SlackMessage,
    extract_conversations,
    extract_messages,
    format_messages,
    format_unix_ts,
    resolve_user_name,
)


class TestExtractMessages:
    def test_basic(self):
        response = parse(
            '{"ok": true, "messages": ['
            '{"user": "U123", "text": "hello", "ts": "1770689887.565249"},'
            '{"user": "U456", "text": "world", "ts": "1770689900.000100"}]}'
        )
        assert extract_messages(response) == [
            SlackMessage("U123", "hello", "1770689887.565249"),
            SlackMessage("U456", "world", "1770689900.000100"),
        ]

    @pytest.mark.parametrize(
        "message, expected",
        [
            ('{"username": "bot_name", "text": "x"}', "bot_name"),
            ('{"bot_id": "B123", "text": "x"}', "B123"),
            ('{"text": "orphan message"}', "unknown"),
        ],
    )
    def test_author_fallbacks(self, message, expected):
        response = parse(f'{{"ok": true, "messages": [{message}]}}')
        assert extract_messages(response)[0].user == expected

    def test_missing_text_and_ts(self):
        message = extract_messages(parse('{"ok": true, "messages": [{"user": "U1"}]}'))[0]
        assert message.text == ""
        assert message.ts == "0"

    def test_api_error(self):
        with pytest.raises(ProviderError) as info:
            extract_messages(parse('{"ok": false, "error": "channel_not_found"}'))
        assert info.value.error == "channel_not_found"
        assert str(info.value) == "Slack API error: channel_not_found"

    def test_missing_scope_lists_scopes(self):
        response = parse(
            '{"ok": false, "error": "missing_scope", '
            '"needed": "users:read", "provided": "channels:history"}'
        )
        with pytest.raises(ProviderError) as info:
            extract_messages(response)
        assert str(info.value) == (
            "Slack API error: missing_scope"
            "\n  needed scope: users:read"
            "\n  provided scopes: channels:history"
        )
        assert info.value.needed == "users:read"

    def test_missing_ok(self):
        with pytest.raises(ProviderError, match="'ok'"):
            extract_messages(parse('{"messages": []}'))

    def test_missing_messages(self):
        with pytest.raises(ProviderError, match="'messages'"):
            extract_messages(parse('{"ok": true}'))


class TestConversations:
    def test_extract(self):
        response = parse(
            '{"ok": true, "channels": ['
            '{"id": "C081VT5GLQH", "name": "general"},'
            '{"id": "C092X3AB7F1", "name": "random"}]}'
        )
        assert extract_conversations(response) == [
            SlackConversation("C081VT5GLQH", "general"),
            SlackConversation("C092X3AB7F1", "random"),
        ]

    def test_direct_message_without_name(self):
        response = parse('{"ok": true, "channels": [{"id": "D1", "user": "U1"}]}')
        assert extract_conversations(response) == [SlackConversation("D1", "")]

    def test_empty(self):
        assert extract_conversations(parse('{"ok": true, "channels": []}')) == []

    def test_error(self):
        with pytest.raises(ProviderError, match="invalid_auth"):
            extract_conversations(parse('{"ok": false, "error": "invalid_auth"}'))


class TestUserName:
    def test_display_name(self):
        response = parse(
            '{"ok": true, "user": {"name": "kanta", "real_name": "Kanta Otomaeru",'
            ' "profile": {"display_name": "kanta-d"}}}'
        )
        assert resolve_user_name(response) == "kanta-d"

    def test_falls_back_to_real_name(self):
        response = parse(
            '{"ok": true, "user": {"name": "kanta", "real_name": "Kanta Otomaeru",'
            ' "profile": {"display_name": ""}}}'
        )
        assert resolve_user_name(response) == "Kanta Otomaeru"

    def test_falls_back_to_name(self):
        response = parse('{"ok": true, "user": {"name": "kanta", "profile": {"display_name": ""}}}')
        assert resolve_user_name(response) == "kanta"

    def test_no_name(self):
        with pytest.raises(ProviderError, match="no user name"):
            resolve_user_name(parse('{"ok": true, "user": {"profile": {}}}'))

    def test_api_error(self):
        with pytest.raises(ProviderError, match="user_not_found"):
            resolve_user_name(parse('{"ok": false, "error": "user_not_found"}'))


class TestFormatting:
    @pytest.mark.parametrize(
        "ts, expected",
        [
            ("0", "1970-01-01 00:00:00"),
            ("1770689887.565249", "2026-02-10 02:18:07"),
            ("951782400", "2000-02-29 00:00:00"),
            ("-86400", "1969-12-31 00:00:00"),
            ("not-a-number", "1970-01-01 00:00:00"),
            ("253402300799", "9999-12-31 23:59:59"),
            ("253402300800", "1970-01-01 00:00:00"),
            ("-62135596801", "1970-01-01 00:00:00"),
            ("99999999999999999999", "1970-01-01 00:00:00"),
        ],
    )
    def test_format_unix_ts(self, ts, expected):
        assert format_unix_ts(ts) == expected

    def test_format_messages(self):
        messages = [
            SlackMessage("U1", "hello", "0"),
            SlackMessage("B7", "beep", "60"),
        ]
        assert format_messages(messages, {"U1": "kanta"}) == (
            "1970-01-01 00:00:00 @kanta hello\n1970-01-01 00:01:00 B7 beep"
        )
