"""
errors.py

Error types raised across slk. Every failure a command can hit is a
subclass of SlkError, so callers can match on the kind of failure while
str(exc) stays the message shown to the operator.
Part of slk - a terminal reader for Slack conversations.
"""

from __future__ import annotations


class SlkError(Exception):
    """Base class for every error slk reports to the operator."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ParseError(SlkError):
    """
    JSON text could not be decoded.

    Attributes:
        offset: Byte offset into the input at which the problem was detected.
        reason: Human-readable description of the problem.
    """

    def __init__(self, offset: int, reason: str) -> None:
        super().__init__(f"JSON parse error at position {offset}: {reason}")
        self.offset = offset
        self.reason = reason


class TransportError(SlkError):
    """An outbound HTTP request failed before a response body was read."""


class ProviderError(SlkError):
    """
    Slack answered, but the answer was an error or lacked a required field.

    Attributes:
        error: The provider's own error string, when it sent one.
        needed: Scope the call needed, for missing_scope errors.
        provided: Scopes the token carries, for missing_scope errors.
    """

    def __init__(
        self,
        message: str,
        error: str | None = None,
        needed: str | None = None,
        provided: str | None = None,
    ) -> None:
        super().__init__(message)
        self.error = error
        self.needed = needed
        self.provided = provided


class CsrfMismatch(SlkError):
    """The callback's state did not match the token issued for this login."""

    def __init__(self) -> None:
        super().__init__("state mismatch: possible CSRF attack. Please try again.")


_MISSING_PARAMETER_MESSAGES = {
    "code": "no 'code' parameter in callback. Authorization may have been denied.",
    "state": "no 'state' parameter in callback",
}


class MissingParameter(SlkError):
    """
    The OAuth callback lacked a required query parameter.

    Attributes:
        name: The missing parameter, "code" or "state".
    """

    def __init__(self, name: str) -> None:
        super().__init__(
            _MISSING_PARAMETER_MESSAGES.get(name, f"no '{name}' parameter in callback")
        )
        self.name = name


class MalformedCallback(SlkError):
    """The OAuth callback request line could not be interpreted."""

    def __init__(self, message: str = "invalid HTTP request") -> None:
        super().__init__(message)


class ConfigError(SlkError):
    """Credentials or local configuration are missing or unreadable."""


class InvalidThreadUrl(SlkError):
    """A Slack thread URL could not be turned into a channel id and timestamp."""


class UsageError(SlkError):
    """The command line did not name a valid command."""
