"""Pytest configuration and shared fixtures."""

import os
import tempfile

# Log files go to a scratch directory; config reads this at import time.
os.environ.setdefault("SLK_LOG_DIR", tempfile.mkdtemp(prefix="slk-test-logs-"))
os.environ["SLK_OPEN_BROWSER"] = "false"

import pytest  # noqa: E402


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Point XDG_CONFIG_HOME at a temp dir and clear credential env vars."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    for key in ("SLACK_TOKEN", "SLK_CLIENT_ID", "SLK_CLIENT_SECRET"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path / "slk"
