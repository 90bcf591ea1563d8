"""
urls.py

Turns a Slack message permalink such as
https://myteam.slack.com/archives/C081VT5GLQH/p1770689887565249
into the channel id and thread ts the API expects.
Part of slk - a terminal reader for Slack conversations.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import InvalidThreadUrl


@dataclass(frozen=True)
class SlackThread:
    channel_id: str
    ts: str


def parse_slack_url(url: str) -> SlackThread:
    """
    Extract the channel id and thread timestamp from a permalink.

    Args:
        url: A Slack ``/archives/<channel>/p<digits>`` URL.

    Returns:
        SlackThread with ts in "seconds.micros" form.

    Raises:
        InvalidThreadUrl: If the URL does not have that shape.

    Example:
        thread = parse_slack_url("https://x.slack.com/archives/C1/p1770689887565249")
        thread.ts  # "1770689887.565249"
    """
    segments = url.split("/")
    try:
        archives = segments.index("archives")
    except ValueError:
        raise InvalidThreadUrl("URL must contain '/archives/'") from None

    if archives + 1 >= len(segments) or not segments[archives + 1]:
        raise InvalidThreadUrl("missing channel ID after /archives/")
    if archives + 2 >= len(segments):
        raise InvalidThreadUrl("missing timestamp after channel ID")

    return SlackThread(
        channel_id=segments[archives + 1],
        ts=convert_timestamp(segments[archives + 2]),
    )


def convert_timestamp(raw: str) -> str:
    """Convert "p1770689887565249" (query string allowed) to "1770689887.565249"."""
    raw = raw.split("?", 1)[0].split("#", 1)[0]
    if not raw.startswith("p"):
        raise InvalidThreadUrl("timestamp must start with 'p'")
    digits = raw[1:]
    if len(digits) <= 10:
        raise InvalidThreadUrl("timestamp too short")
    return f"{digits[:10]}.{digits[10:]}"
