"""
main.py

Entry point for slk, a terminal reader for Slack conversations.
Dispatches the login, list, history and thread commands and prints
their output as plain text.
Part of slk - a terminal reader for Slack conversations.
"""

import argparse
import logging
import sys
from typing import Optional

import config
from auth import token_manager
from auth.slack_oauth import run_oauth_flow
from core.errors import SlkError, UsageError
from slack_api import messages as message_module
from slack_api.client import SlackClient
from slack_api.urls import parse_slack_url

_log = logging.getLogger("slk.main")
if not _log.handlers:
    _handler = logging.FileHandler(config.LOGS_DIR / "main.log", encoding="utf-8")
    _handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))
    _log.addHandler(_handler)
    _log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    _log.propagate = False


def build_parser() -> argparse.ArgumentParser:
    """
    Build the command line parser.

    Returns:
        The configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="slk",
        description="slk - read Slack conversations from the terminal",
    )
    commands = parser.add_subparsers(dest="command", metavar="command")
    commands.required = True

    commands.add_parser("login", help="Authorize slk with Slack and save the token")
    commands.add_parser("list", help="List conversations as <id>\\t<name>")

    history = commands.add_parser("history", help="Show recent messages in a conversation")
    history.add_argument("channel_id", help="Conversation id, e.g. C081VT5GLQH")

    thread = commands.add_parser("thread", help="Show a thread's replies")
    thread.add_argument("target", help="Conversation id, or a message permalink")
    thread.add_argument("ts", nargs="?", help="Thread timestamp when target is an id")
    return parser


def resolve_thread_target(target: str, ts: Optional[str]) -> tuple[str, str]:
    """
    Turn the thread command's arguments into (channel_id, ts).

    Raises:
        UsageError: If an id is given without a timestamp.
        InvalidThreadUrl: If a URL is given but is not a thread permalink.
    """
    if target.startswith("http"):
        thread = parse_slack_url(target)
        return thread.channel_id, thread.ts
    if not ts:
        raise UsageError("usage: slk thread <channel-id> <thread-ts>")
    return target, ts


def resolve_user_names(
    messages: list[message_module.SlackMessage],
    token: str,
    client: SlackClient,
) -> dict[str, str]:
    """
    Look up display names for every distinct user id (U...) in messages.

    Returns:
        Mapping of user id to display name.
    """
    names: dict[str, str] = {}
    for user_id in dict.fromkeys(m.user for m in messages):
        if not user_id.startswith("U"):
            continue
        response = client.fetch_user_info(user_id, token)
        names[user_id] = message_module.resolve_user_name(response)
    return names


def run_login() -> str:
    """Run the OAuth flow and persist the resulting token."""
    client_id, client_secret = token_manager.load_client_credentials()
    token = run_oauth_flow(client_id, client_secret)
    path = token_manager.save_token(token)
    return f"Token saved to {path}"


def run_list(client: Optional[SlackClient] = None) -> str:
    """Return one "<id>\\t<name>" line per conversation."""
    client = client or SlackClient()
    token = token_manager.resolve_token()
    response = client.fetch_conversations_list(token)
    conversations = message_module.extract_conversations(response)
    return "\n".join(f"{c.id}\t{c.name}" for c in conversations)


def run_history(channel_id: str, client: Optional[SlackClient] = None) -> str:
    """Return a conversation's latest page of messages as text."""
    client = client or SlackClient()
    token = token_manager.resolve_token()
    response = client.fetch_conversation_history(channel_id, token)
    messages = message_module.extract_messages(response)
    names = resolve_user_names(messages, token, client)
    return message_module.format_messages(messages, names)


def run_thread(channel_id: str, ts: str, client: Optional[SlackClient] = None) -> str:
    """Return a thread's replies as text."""
    client = client or SlackClient()
    token = token_manager.resolve_token()
    response = client.fetch_thread_replies(channel_id, ts, token)
    messages = message_module.extract_messages(response)
    names = resolve_user_names(messages, token, client)
    return message_module.format_messages(messages, names)


def run(argv: Optional[list[str]] = None) -> str:
    """
    Parse arguments and run the chosen command.

    Returns:
        The text to print on success.
    """
    args = build_parser().parse_args(argv)
    _log.info("Running command '%s'", args.command)

    if args.command == "login":
        return run_login()
    if args.command == "list":
        return run_list()
    if args.command == "history":
        return run_history(args.channel_id)
    channel_id, ts = resolve_thread_target(args.target, args.ts)
    return run_thread(channel_id, ts)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Process exit status: 0 on success, 1 on any slk error, 130 on Ctrl-C.
    """
    try:
        output = run(argv)
    except SlkError as exc:
        _log.error("Command failed (%s): %s", type(exc).__name__, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130

    if output:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
