from __future__ import annotations


class MutumwaError(Exception):
    """Base exception for mutumwa errors."""

    def __init__(self, msg: str, /):
        super().__init__(msg)
        self.message = msg

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ConfigError(MutumwaError):
    """Exception raised for invalid or missing configuration."""


class TransportError(MutumwaError):
    """Exception raised when the underlying byte stream fails.

    This is the only error a reply stream propagates; malformed records and
    payloads are absorbed while reading.
    """


class WebhookStatusError(TransportError):
    """Exception raised when the webhook answers with a non-success status."""

    def __init__(self, msg: str, /, status_code: int):
        super().__init__(msg)
        self.status_code = status_code


class StreamClosedError(MutumwaError):
    """Exception raised when a finished stream or message is used again."""


class ConversationBusyError(MutumwaError):
    """Exception raised when a message is sent while a reply is in flight."""
