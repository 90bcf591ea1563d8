"""
messages.py

Pulls messages, conversations and user names out of decoded Slack API
responses and renders them as plain text lines.
Part of slk - a terminal reader for Slack conversations.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.errors import ProviderError
from core.json_value import Value

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class SlackMessage:
    user: str
    text: str
    ts: str


@dataclass(frozen=True)
class SlackConversation:
    id: str
    name: str


def _str_field(node: Optional[Value], key: str) -> Optional[str]:
    if node is None:
        return None
    value = node.get(key)
    return value.as_str() if value is not None else None


def check_ok(response: Value) -> None:
    """
    Raise unless the response's top-level ``ok`` is true.

    Raises:
        ProviderError: With Slack's error string and, for scope problems,
            the needed and provided scopes.
    """
    ok_value = response.get("ok")
    ok = ok_value.as_bool() if ok_value is not None else None
    if ok is None:
        raise ProviderError("missing 'ok' field in response")
    if ok:
        return

    error = _str_field(response, "error")
    needed = _str_field(response, "needed")
    provided = _str_field(response, "provided")
    message = f"Slack API error: {error or 'unknown error'}"
    if needed is not None:
        message += f"\n  needed scope: {needed}"
    if provided is not None:
        message += f"\n  provided scopes: {provided}"
    raise ProviderError(message, error=error, needed=needed, provided=provided)


def _require_array(response: Value, key: str) -> list[Value]:
    node = response.get(key)
    items = node.as_array() if node is not None else None
    if items is None:
        raise ProviderError(f"missing '{key}' array in response")
    return items


def extract_messages(response: Value) -> list[SlackMessage]:
    """
    Read the ``messages`` array of a history or replies response.

    The author falls back from ``user`` to ``username`` to ``bot_id`` and
    finally "unknown"; missing text is empty and a missing ts is "0".
    """
    check_ok(response)
    result = []
    for item in _require_array(response, "messages"):
        user = (
            _str_field(item, "user")
            or _str_field(item, "username")
            or _str_field(item, "bot_id")
            or "unknown"
        )
        result.append(
            SlackMessage(
                user=user,
                text=_str_field(item, "text") or "",
                ts=_str_field(item, "ts") or "0",
            )
        )
    return result


def extract_conversations(response: Value) -> list[SlackConversation]:
    """Read the ``channels`` array of a conversations.list response."""
    check_ok(response)
    return [
        SlackConversation(
            id=_str_field(item, "id") or "",
            name=_str_field(item, "name") or "",
        )
        for item in _require_array(response, "channels")
    ]


def resolve_user_name(response: Value) -> str:
    """
    Pick a display name out of a users.info response.

    Prefers profile.display_name, then real_name, then name; empty strings
    are skipped.

    Raises:
        ProviderError: If the call failed or no name is present.
    """
    check_ok(response)
    user = response.get("user")
    if user is None:
        raise ProviderError("missing 'user' field in response")

    for name in (
        _str_field(user.get("profile"), "display_name"),
        _str_field(user, "real_name"),
        _str_field(user, "name"),
    ):
        if name:
            return name
    raise ProviderError("no user name found in response")


def format_unix_ts(ts: str) -> str:
    """
    Render a Slack ``ts`` ("1770689887.565249") as UTC "YYYY-MM-DD HH:MM:SS".

    Anything unparseable, or outside the years 1 to 9999 that datetime can
    represent, renders as the epoch.
    """
    try:
        seconds = int(ts.split(".", 1)[0])
    except ValueError:
        seconds = 0
    try:
        moment = _EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        moment = _EPOCH
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d} "
        f"{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )


def format_messages(messages: list[SlackMessage], user_names: dict[str, str]) -> str:
    """One line per message: time, @name (or raw id), text."""
    lines = []
    for message in messages:
        name = user_names.get(message.user)
        display = f"@{name}" if name is not None else message.user
        lines.append(f"{format_unix_ts(message.ts)} {display} {message.text}")
    return "\n".join(lines)
