"""
client.py

Thin wrapper around requests for the Slack Web API calls slk makes.
Every response body is decoded with core.json_decoder before anything
reads a field from it. One page per call, no retries.
Part of slk - a terminal reader for Slack conversations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

import config
from core.errors import TransportError
from core.json_decoder import parse
from core.json_value import Value

LOG_FILE = config.LOGS_DIR / "api.log"

_log = logging.getLogger("slk.api")
if not _log.handlers:
    _handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    _handler.setFormatter(
        logging.Formatter("[%(asctime)s] [%(levelname)s] [api] %(message)s")
    )
    _log.addHandler(_handler)
    _log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    _log.propagate = False

CONVERSATION_TYPES = "public_channel,private_channel,mpim,im"


@dataclass(frozen=True)
class ApiResponse:
    """Status code and body text of one HTTP exchange."""

    status_code: int
    text: str

    def decode(self) -> Value:
        """Parse the body as JSON."""
        return parse(self.text)


class SlackClient:
    """
    Sends Slack Web API requests and returns decoded bodies.

    Usage:
        client = SlackClient()
        history = client.fetch_conversation_history("C123", token)
    """

    def __init__(
        self,
        base_url: str = config.SLACK_API_BASE,
        timeout: int = config.HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def method_url(self, method: str) -> str:
        return f"{self.base_url}/{method}"

    def get(self, method: str, params: dict[str, str], token: str) -> ApiResponse:
        """
        Send a bearer-authenticated GET to a Web API method.

        Raises:
            TransportError: If the request could not be completed.
        """
        url = self.method_url(method)
        try:
            response = self.session.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            _log.error("GET %s failed: %s", method, exc)
            raise TransportError(f"request to {method} failed: {exc}") from exc
        _log.info("GET %s -> %s", method, response.status_code)
        return ApiResponse(response.status_code, response.text)

    def post_form(self, url: str, data: dict[str, str]) -> ApiResponse:
        """
        Send a form-encoded POST.

        Raises:
            TransportError: If the request could not be completed.
        """
        try:
            response = self.session.post(
                url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            _log.error("POST %s failed: %s", url, exc)
            raise TransportError(f"request to {url} failed: {exc}") from exc
        _log.info("POST %s -> %s", url, response.status_code)
        return ApiResponse(response.status_code, response.text)

    # -- Web API methods -------------------------------------------------------

    def fetch_thread_replies(self, channel_id: str, ts: str, token: str) -> Value:
        return self.get("conversations.replies", {"channel": channel_id, "ts": ts}, token).decode()

    def fetch_conversation_history(self, channel_id: str, token: str) -> Value:
        return self.get("conversations.history", {"channel": channel_id}, token).decode()

    def fetch_conversations_list(self, token: str) -> Value:
        return self.get("conversations.list", {"types": CONVERSATION_TYPES}, token).decode()

    def fetch_user_info(self, user_id: str, token: str) -> Value:
        return self.get("users.info", {"user": user_id}, token).decode()

    def exchange_code(
        self,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
        token_url: str = config.SLACK_TOKEN_URL,
    ) -> Value:
        """
        Exchange an OAuth authorization code at oauth.v2.access.

        Returns:
            The decoded response; the caller checks ``ok`` and extracts the token.
        """
        response = self.post_form(
            token_url,
            {
                "client_id": client_id,
                "client_secret": client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        return response.decode()
