"""
slack_oauth.py

Implements the OAuth2 Authorization Code Flow for Slack user tokens.
Handles CSRF state generation, authorization URL generation, the local
HTTPS callback, and the code-for-token exchange.
Part of slk - a terminal reader for Slack conversations.

Auth Flow: OAuth2 Authorization Code Flow
Provider: Slack
Scopes: channels:history, channels:read, groups:history, groups:read,
        mpim:read, im:read, users:read (user scopes)
Auth URL: https://slack.com/oauth/v2/authorize
Token URL: https://slack.com/api/oauth.v2.access
Redirect URI: https://127.0.0.1:9876

A login attempt moves through FlowState in order:

    IDLE -> LISTENING -> CALLBACK_RECEIVED -> VALIDATED -> EXCHANGED

Any error moves it to FAILED. While LISTENING, each accepted connection is
either ACCEPTED (it carried a request) or DISCARDED (handshake failure,
empty read); a discarded connection leaves the flow in LISTENING.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import sys
import webbrowser
from dataclasses import dataclass
from enum import Enum, unique
from typing import Callable, Optional
from urllib.parse import urlencode

import config
from auth.callback_server import (
    CallbackListener,
    CallbackRequest,
    TlsIdentity,
    generate_tls_identity,
)
from core.errors import CsrfMismatch, MissingParameter, ProviderError, SlkError
from core.json_value import Value
from slack_api.client import SlackClient

LOG_FILE = config.LOGS_DIR / "auth_oauth.log"

_log = logging.getLogger("slk.auth.oauth")
if not _log.handlers:
    _handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    _handler.setFormatter(
        logging.Formatter("[%(asctime)s] [%(levelname)s] [auth.oauth] %(message)s")
    )
    _log.addHandler(_handler)
    _log.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    _log.propagate = False


@unique
class FlowState(Enum):
    """Where a login attempt currently stands."""

    IDLE = "idle"
    LISTENING = "listening"
    CALLBACK_RECEIVED = "callback_received"
    VALIDATED = "validated"
    EXCHANGED = "exchanged"
    FAILED = "failed"


@unique
class ConnectionOutcome(Enum):
    """What happened to one connection accepted while LISTENING."""

    ACCEPTED = "accepted"
    DISCARDED = "discarded"


@dataclass
class AuthSession:
    """
    Ephemeral state of one login attempt. Never persisted or reused.

    Attributes:
        state: The 32-character hex CSRF token sent as ``state``.
        identity: The throwaway TLS certificate/key for the listener.
        listener: The bound callback listener, None once closed.
        authorization_url: The URL the user is sent to.
    """

    state: str
    identity: TlsIdentity
    listener: Optional[CallbackListener]
    authorization_url: str

    def close(self) -> None:
        if self.listener is not None:
            self.listener.close()
            self.listener = None


def generate_state() -> str:
    """
    Generate a CSRF token from 16 bytes of OS entropy.

    Returns:
        32 lowercase hex characters.

    Example:
        state = generate_state()
    """
    return secrets.token_hex(16)


def build_authorization_url(
    client_id: str,
    state: str,
    redirect_uri: str = config.REDIRECT_URI,
    scopes: tuple[str, ...] = config.SLACK_USER_SCOPES,
    authorize_url: str = config.SLACK_AUTHORIZE_URL,
) -> str:
    """
    Generate the Slack OAuth2 authorization URL.

    Args:
        client_id: The Slack app's client id.
        state: CSRF token echoed back in the callback.
        redirect_uri: Where Slack sends the browser afterwards.
        scopes: User scopes to request.
        authorize_url: Slack's authorize endpoint.

    Returns:
        The full authorization URL to send the user to.

    Example:
        url = build_authorization_url("123.456", generate_state())
    """
    query = urlencode(
        {
            "client_id": client_id,
            "user_scope": ",".join(scopes),
            "redirect_uri": redirect_uri,
            "state": state,
        },
        safe=",:",
    )
    return f"{authorize_url}?{query}"


def extract_callback_params(request: CallbackRequest | str) -> tuple[str, str]:
    """
    Pull ``code`` and ``state`` out of the callback's request line.

    The first occurrence of each parameter wins; empty values count as absent.

    Args:
        request: The callback request, or its raw text.

    Returns:
        (code, state)

    Raises:
        MalformedCallback: If the request line has no target.
        MissingParameter: If ``code`` or ``state`` is absent.
    """
    if isinstance(request, str):
        request = CallbackRequest(request)

    code: Optional[str] = None
    state: Optional[str] = None
    for name, value in request.query_params():
        if name == "code" and code is None:
            code = value
        elif name == "state" and state is None:
            state = value

    if code is None:
        raise MissingParameter("code")
    if state is None:
        raise MissingParameter("state")
    return code, state


def extract_access_token(response: Value) -> str:
    """
    Read the user access token out of an oauth.v2.access response.

    Raises:
        ProviderError: If ``ok`` is not true or the token is missing.
    """
    ok_value = response.get("ok")
    if not (ok_value is not None and ok_value.as_bool()):
        error_value = response.get("error")
        error = error_value.as_str() if error_value is not None else None
        raise ProviderError(f"oauth.v2.access failed: {error or 'unknown error'}", error=error)

    authed_user = response.get("authed_user")
    token_value = authed_user.get("access_token") if authed_user is not None else None
    token = token_value.as_str() if token_value is not None else None
    if token is None:
        raise ProviderError("missing authed_user.access_token in response")
    return token


class OAuthFlow:
    """
    One Slack login attempt, driven step by step or all at once with run().

    Usage:
        token = OAuthFlow(client_id, client_secret).run()
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        client: Optional[SlackClient] = None,
        redirect_uri: str = config.REDIRECT_URI,
        listener_factory: Callable[[TlsIdentity], CallbackListener] = CallbackListener,
        identity_factory: Callable[[], TlsIdentity] = generate_tls_identity,
        open_browser: bool = config.OPEN_BROWSER,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.client = client or SlackClient()
        self.redirect_uri = redirect_uri
        self.listener_factory = listener_factory
        self.identity_factory = identity_factory
        self.open_browser = open_browser

        self.state = FlowState.IDLE
        self.session: Optional[AuthSession] = None
        self.request: Optional[CallbackRequest] = None
        self.code: Optional[str] = None
        self.discarded = 0

    def _require(self, expected: FlowState) -> None:
        if self.state is not expected:
            raise RuntimeError(
                f"login flow is {self.state.value}, expected {expected.value}"
            )

    def _fail(self) -> None:
        self.state = FlowState.FAILED
        if self.session is not None:
            self.session.close()

    def start(self) -> AuthSession:
        """
        IDLE -> LISTENING: issue the CSRF token, bind the listener, send the
        user to Slack.
        """
        self._require(FlowState.IDLE)
        try:
            state = generate_state()
            identity = self.identity_factory()
            listener = self.listener_factory(identity)
            listener.bind()
        except SlkError:
            self._fail()
            raise

        url = build_authorization_url(self.client_id, state, self.redirect_uri)
        self.session = AuthSession(
            state=state,
            identity=identity,
            listener=listener,
            authorization_url=url,
        )
        self.state = FlowState.LISTENING
        _log.info("Starting Slack login; waiting for callback on %s", self.redirect_uri)

        print("Opening browser for authorization...", file=sys.stderr)
        print(
            "If prompted about the certificate, click 'Advanced' and 'Proceed'.",
            file=sys.stderr,
        )
        print(f"If the browser doesn't open, visit:\n  {url}", file=sys.stderr)
        self._launch_browser(url)
        print(f"Waiting for callback on {self.redirect_uri} ...", file=sys.stderr)
        return self.session

    def _launch_browser(self, url: str) -> None:
        if not self.open_browser:
            return
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as exc:
            _log.info("Could not open browser automatically: %s", exc)
            return
        if opened:
            _log.info("Opened browser for Slack login")
        else:
            _log.info("Could not open browser automatically for Slack login")

    def poll(self) -> ConnectionOutcome:
        """
        Accept one connection while LISTENING.

        Returns:
            ACCEPTED (now CALLBACK_RECEIVED) or DISCARDED (still LISTENING).
        """
        self._require(FlowState.LISTENING)
        try:
            request = self.session.listener.serve_once()
        except SlkError:
            self._fail()
            raise

        if request is None:
            self.discarded += 1
            return ConnectionOutcome.DISCARDED

        self.request = request
        self.state = FlowState.CALLBACK_RECEIVED
        return ConnectionOutcome.ACCEPTED

    def wait_for_callback(self) -> CallbackRequest:
        """Poll until a connection delivers a request. Blocks with no timeout."""
        while self.poll() is ConnectionOutcome.DISCARDED:
            pass
        return self.request

    def validate(self) -> str:
        """
        CALLBACK_RECEIVED -> VALIDATED: check the callback's state against
        the CSRF token and keep the code. Closes the listener.

        Raises:
            MissingParameter: If code or state is absent.
            CsrfMismatch: If state differs from the issued token.
        """
        self._require(FlowState.CALLBACK_RECEIVED)
        try:
            code, returned_state = extract_callback_params(self.request)
            # compare_digest rejects non-ASCII str, and the callback is untrusted.
            if not hmac.compare_digest(
                returned_state.encode("utf-8"), self.session.state.encode("utf-8")
            ):
                _log.warning("Callback state did not match the issued CSRF token")
                raise CsrfMismatch()
        except SlkError:
            self._fail()
            raise

        self.session.close()
        self.code = code
        self.state = FlowState.VALIDATED
        return code

    def exchange(self) -> str:
        """
        VALIDATED -> EXCHANGED: trade the code for a user access token.

        Raises:
            TransportError: If the token endpoint could not be reached.
            ParseError: If the response is not JSON.
            ProviderError: If Slack refused or omitted the token.
        """
        self._require(FlowState.VALIDATED)
        try:
            response = self.client.exchange_code(
                self.client_id, self.client_secret, self.code, self.redirect_uri
            )
            token = extract_access_token(response)
        except SlkError as exc:
            _log.error("Slack token exchange failed: %s", exc)
            self._fail()
            raise

        self.code = None
        self.state = FlowState.EXCHANGED
        _log.info("Slack login complete")
        return token

    def run(self) -> str:
        """Run every step in order and return the access token."""
        try:
            self.start()
            self.wait_for_callback()
            self.validate()
            return self.exchange()
        finally:
            if self.session is not None:
                self.session.close()


def run_oauth_flow(client_id: str, client_secret: str) -> str:
    """
    Run the interactive Slack login and return the user access token.

    Args:
        client_id: The Slack app's client id.
        client_secret: The Slack app's client secret.

    Returns:
        The access token. Persisting it is the caller's job.

    Raises:
        SlkError: On any failure; the caller must start a new attempt.

    Example:
        token = run_oauth_flow(client_id, client_secret)
    """
    return OAuthFlow(client_id, client_secret).run()
