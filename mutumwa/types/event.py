from __future__ import annotations

import typing as t

import typing_extensions as te

from mutumwa.types import JSONValue


class RawEventRecord(te.TypedDict):
    """One line of the webhook reply stream, as sent on the wire."""

    type: str
    """Record kind. Only ``"item"`` carries reply text."""

    content: te.NotRequired[str]
    """Reply payload; plain text or a JSON object with an ``output`` field."""


class RawFinalPayload(te.TypedDict):
    """Consolidated answer embedded in an item's ``content``."""

    output: str
    """Full reply text, superseding everything streamed before it."""


class ItemEvent(t.NamedTuple):
    """Actionable record: ``{"type": "item", "content": <non-empty str>}``.

    Attributes:
        content: Candidate payload for the message reducer.
    """

    content: str


class OpaqueEvent(t.NamedTuple):
    """Any other parsed record (heartbeats, unknown types, items without
    content). Kept as the decoded JSON value for callers that want to look.

    Attributes:
        value: The decoded JSON value.
    """

    value: JSONValue


EventRecord: t.TypeAlias = ItemEvent | OpaqueEvent
"""Parsed reply-stream record."""


def from_value(value: JSONValue) -> EventRecord:
    """Classify an already-decoded JSON value into an event record.

    Args:
        value: Decoded JSON value of one line.

    Returns:
        ``ItemEvent`` if the value is an item record with non-empty string
        content, ``OpaqueEvent`` otherwise.
    """
    if isinstance(value, dict) and value.get("type") == "item":
        content = value.get("content")
        if isinstance(content, str) and content:
            return ItemEvent(content=content)
    return OpaqueEvent(value=value)
