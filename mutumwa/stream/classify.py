from __future__ import annotations

import json
import logging

from mutumwa.types.event import EventRecord
from mutumwa.types.event import ItemEvent
from mutumwa.types.event import from_value

logger = logging.getLogger("mutumwa.stream.classify")


def parse_record(line: str) -> EventRecord | None:
    """Parse one reply-stream line into an event record.

    Args:
        line: A complete line, without its newline.

    Returns:
        The classified record, or None for blank lines and lines that are not
        valid JSON.
    """
    stripped = line.strip()
    if not stripped:
        return None
    try:
        value = json.loads(stripped)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed line: %r", line[:200])
        return None
    return from_value(value)


def classify_line(line: str) -> ItemEvent | None:
    """Return the actionable item carried by ``line``, or None.

    Blank lines, invalid JSON, records whose ``type`` is not ``"item"`` and
    items with absent or empty ``content`` are all ignored.
    """
    record = parse_record(line)
    if isinstance(record, ItemEvent):
        return record
    if record is not None:
        logger.debug("Ignoring non-item record: %r", record.value)
    return None
