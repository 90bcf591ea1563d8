"""
config.py

Loads environment variables from .env using python-dotenv.
Exposes them as typed constants grouped by section.
Part of slk - a terminal reader for Slack conversations.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Load .env files: project root first, then the working directory (wins)
# ---------------------------------------------------------------------------
PROJECT_ROOT: Path = Path(__file__).resolve().parent
load_dotenv(PROJECT_ROOT / ".env")
load_dotenv(Path.cwd() / ".env", override=True)


def _get_optional(key: str, default: str = "") -> str:
    """
    Retrieve an optional environment variable with a default.

    Args:
        key: The environment variable name.
        default: Fallback value if not set.

    Returns:
        The value string or default.
    """
    return os.getenv(key, default).strip() or default


def _get_bool(key: str, default: bool = False) -> bool:
    """
    Retrieve an environment variable as a boolean.

    Args:
        key: The environment variable name.
        default: Fallback if not set.

    Returns:
        True if the value is "true"/"1"/"yes" (case-insensitive), else False.
    """
    raw = os.getenv(key, "").strip().lower()
    if not raw:
        return default
    return raw in ("true", "1", "yes")


def _get_int(key: str, default: int = 0) -> int:
    """
    Retrieve an environment variable as an integer.

    Args:
        key: The environment variable name.
        default: Fallback if not set or not a valid int.

    Returns:
        The integer value.
    """
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _default_log_dir() -> str:
    """Return $XDG_STATE_HOME/slk/logs, falling back to ~/.local/state/slk/logs."""
    state_home = os.getenv("XDG_STATE_HOME", "").strip()
    base = Path(state_home) if state_home else Path.home() / ".local" / "state"
    return str(base / "slk" / "logs")


# ===========================================================================
# Section 1 - Slack Web API
# ===========================================================================

SLACK_API_BASE: str = _get_optional("SLACK_API_BASE", "https://slack.com/api").rstrip("/")
SLACK_AUTHORIZE_URL: str = _get_optional(
    "SLACK_AUTHORIZE_URL", "https://slack.com/oauth/v2/authorize"
)
SLACK_TOKEN_URL: str = f"{SLACK_API_BASE}/oauth.v2.access"
SLACK_USER_SCOPES: tuple[str, ...] = (
    "channels:history",
    "channels:read",
    "groups:history",
    "groups:read",
    "mpim:read",
    "im:read",
    "users:read",
)
HTTP_TIMEOUT: int = _get_int("SLK_HTTP_TIMEOUT", 30)

# ===========================================================================
# Section 2 - OAuth callback listener
# ===========================================================================

# The redirect URI must match the one registered with the Slack app, so
# changing the port means updating the app registration as well.
CALLBACK_HOST: str = "127.0.0.1"
CALLBACK_PORT: int = _get_int("SLK_CALLBACK_PORT", 9876)
REDIRECT_URI: str = f"https://{CALLBACK_HOST}:{CALLBACK_PORT}"
CONNECTION_TIMEOUT: int = _get_int("SLK_CONNECTION_TIMEOUT", 30)
OPEN_BROWSER: bool = _get_bool("SLK_OPEN_BROWSER", default=True)

# ===========================================================================
# Section 3 - General
# ===========================================================================

LOG_LEVEL: str = _get_optional("LOG_LEVEL", "INFO").upper()
LOGS_DIR: Path = Path(_get_optional("SLK_LOG_DIR", _default_log_dir()))

# Ensure logs directory exists
LOGS_DIR.mkdir(parents=True, exist_ok=True)


def as_dict() -> dict[str, str | int | bool]:
    """
    Return all configuration values as a flat dictionary.
    Secrets are reported by presence only.

    Returns:
        A dict of config keys and their current values.

    Example:
        cfg = as_dict()
    """
    return {
        "SLACK_API_BASE": SLACK_API_BASE,
        "SLACK_AUTHORIZE_URL": SLACK_AUTHORIZE_URL,
        "SLACK_TOKEN": "***set***" if os.getenv("SLACK_TOKEN") else "",
        "SLK_CLIENT_ID": "***set***" if os.getenv("SLK_CLIENT_ID") else "",
        "SLK_CLIENT_SECRET": "***set***" if os.getenv("SLK_CLIENT_SECRET") else "",
        "SLK_HTTP_TIMEOUT": HTTP_TIMEOUT,
        "SLK_CALLBACK_PORT": CALLBACK_PORT,
        "REDIRECT_URI": REDIRECT_URI,
        "SLK_CONNECTION_TIMEOUT": CONNECTION_TIMEOUT,
        "SLK_OPEN_BROWSER": OPEN_BROWSER,
        "LOG_LEVEL": LOG_LEVEL,
        "SLK_LOG_DIR": str(LOGS_DIR),
    }
