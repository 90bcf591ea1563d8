"""Tests for the Slack Web API client."""

import pytest
import requests

from core.errors import ParseError, TransportError
from core.json_value import Bool
from slack_api.client import CONVERSATION_TYPES, SlackClient


class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code


class FakeSession:
    """Records requests and replays one canned response or exception."""

    def __init__(self, text='{"ok": true}', status_code=200, error=None):
        self.response = FakeResponse(text, status_code)
        self.error = error
        self.calls = []

    def _answer(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._answer("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._answer("POST", url, **kwargs)


def make_client(**kwargs):
    session = FakeSession(**kwargs)
    return SlackClient(base_url="https://slack.test/api/", timeout=5, session=session), session


def test_history_request():
    client, session = make_client()
    value = client.fetch_conversation_history("C123", "xoxp-1")

    assert value.get("ok") == Bool(True)
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("GET", "https://slack.test/api/conversations.history")
    assert kwargs["params"] == {"channel": "C123"}
    assert kwargs["headers"] == {"Authorization": "Bearer xoxp-1"}
    assert kwargs["timeout"] == 5


@pytest.mark.parametrize(
    "call, method, params",
    [
        (lambda c: c.fetch_thread_replies("C1", "1.2", "t"), "conversations.replies",
         {"channel": "C1", "ts": "1.2"}),
        (lambda c: c.fetch_conversations_list("t"), "conversations.list",
         {"types": CONVERSATION_TYPES}),
        (lambda c: c.fetch_user_info("U1", "t"), "users.info", {"user": "U1"}),
    ],
)
def test_method_endpoints(call, method, params):
    client, session = make_client()
    call(client)
    _, url, kwargs = session.calls[0]
    assert url == f"https://slack.test/api/{method}"
    assert kwargs["params"] == params


def test_exchange_code_posts_form():
    client, session = make_client(text='{"ok": false, "error": "invalid_code"}')
    value = client.exchange_code(
        "id", "secret", "code-1", "https://127.0.0.1:9876", token_url="https://slack.test/token"
    )

    assert value.get("error").as_str() == "invalid_code"
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "https://slack.test/token")
    assert kwargs["data"] == {
        "client_id": "id",
        "client_secret": "secret",
        "code": "code-1",
        "redirect_uri": "https://127.0.0.1:9876",
    }


def test_transport_failure():
    client, _ = make_client(error=requests.ConnectionError("connection refused"))
    with pytest.raises(TransportError, match="conversations.list"):
        client.fetch_conversations_list("t")


def test_non_json_body_is_parse_error():
    client, _ = make_client(text="<html>Bad Gateway</html>", status_code=502)
    with pytest.raises(ParseError):
        client.fetch_conversations_list("t")


def test_raw_response_keeps_status():
    client, _ = make_client(text="{}", status_code=429)
    response = client.get("users.info", {"user": "U1"}, "t")
    assert response.status_code == 429
    assert response.text == "{}"
