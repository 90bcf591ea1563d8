"""
token_manager.py

Token and client-credential storage for slk.
The user token lives in ~/.config/slk/credentials (mode 0600); the Slack
app's client id/secret come from the environment or ~/.config/slk/config.json.
Part of slk - a terminal reader for Slack conversations.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import config
from core.errors import ConfigError, ParseError
from core.json_decoder import parse

CREDENTIALS_FILE = "credentials"
CLIENT_CONFIG_FILE = "config.json"
LOG_FILE = config.LOGS_DIR / "auth_tokens.log"

_log = logging.getLogger("slk.auth.tokens")
if not _log.handlers:
    _handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    _handler.setFormatter(
        logging.Formatter("[%(asctime)s] [%(levelname)s] [auth.tokens] %(message)s")
    )
    _log.addHandler(_handler)
    _log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    _log.propagate = False


def config_dir() -> Path:
    """
    Return the slk configuration directory.

    Returns:
        $XDG_CONFIG_HOME/slk, or $HOME/.config/slk when XDG_CONFIG_HOME is unset.

    Raises:
        ConfigError: If neither XDG_CONFIG_HOME nor HOME is set.
    """
    xdg = os.getenv("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "slk"
    home = os.getenv("HOME", "")
    if not home:
        raise ConfigError("HOME environment variable is not set")
    return Path(home) / ".config" / "slk"


def load_token() -> Optional[str]:
    """
    Read the stored user token.

    Returns:
        The token, or None if nothing has been saved.

    Raises:
        ConfigError: If the file exists but cannot be read.

    Example:
        token = load_token()
    """
    path = config_dir() / CREDENTIALS_FILE
    try:
        contents = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ConfigError(f"failed to read {path}: {exc}") from exc
    return contents.strip() or None


def save_token(token: str) -> Path:
    """
    Persist the user token, readable by the owner only.

    Args:
        token: The access token returned by the login flow.

    Returns:
        The path written.

    Raises:
        ConfigError: If the directory or file cannot be written.

    Example:
        path = save_token("xoxp-...")
    """
    directory = config_dir()
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"failed to create directory {directory}: {exc}") from exc

    path = directory / CREDENTIALS_FILE
    try:
        path.write_text(token, encoding="utf-8")
        if os.name == "posix":
            path.chmod(0o600)
    except OSError as exc:
        raise ConfigError(f"failed to write {path}: {exc}") from exc

    _log.info("Token saved to %s", path)
    return path


def load_client_credentials() -> tuple[str, str]:
    """
    Resolve the Slack app's client id and secret.

    SLK_CLIENT_ID and SLK_CLIENT_SECRET win when both are set; otherwise
    config.json in the config directory is read.

    Returns:
        (client_id, client_secret)

    Raises:
        ConfigError: If neither source provides both values.
        ParseError: If config.json is not valid JSON.
    """
    client_id = os.getenv("SLK_CLIENT_ID", "")
    client_secret = os.getenv("SLK_CLIENT_SECRET", "")
    if client_id and client_secret:
        return client_id, client_secret

    path = config_dir() / CLIENT_CONFIG_FILE
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError:
        raise ConfigError(
            "client_id and client_secret are required. Set SLK_CLIENT_ID/SLK_CLIENT_SECRET "
            "or create ~/.config/slk/config.json"
        ) from None

    try:
        document = parse(contents)
    except ParseError:
        _log.error("Invalid JSON in %s", path)
        raise

    values = []
    for key in ("client_id", "client_secret"):
        node = document.get(key)
        value = node.as_str() if node is not None else None
        if value is None:
            raise ConfigError(f"missing '{key}' in config.json")
        values.append(value)
    return values[0], values[1]


def resolve_token() -> str:
    """
    Find the token to call the API with.

    Returns:
        SLACK_TOKEN from the environment if non-empty, else the stored token.

    Raises:
        ConfigError: If no token is available.
    """
    token = os.getenv("SLACK_TOKEN", "")
    if token:
        return token
    stored = load_token()
    if stored:
        return stored
    raise ConfigError("no Slack token found. Set SLACK_TOKEN or run: slk login")
