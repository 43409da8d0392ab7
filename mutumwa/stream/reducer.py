from __future__ import annotations

import enum
import json
import logging

from mutumwa.exceptions import StreamClosedError
from mutumwa.types.message import AssembledMessage
from mutumwa.types.update import Created
from mutumwa.types.update import Finalized
from mutumwa.types.update import MessageUpdate
from mutumwa.types.update import Updated

logger = logging.getLogger("mutumwa.stream.reducer")


class ReducerState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    ACCUMULATING = "accumulating"
    TERMINAL = "terminal"


def final_output(payload: str) -> str | None:
    """Extract the consolidated answer from a payload, if it carries one.

    A payload carries a final answer when, once trimmed, it looks like a JSON
    object, parses as one, and has a non-empty ``output`` field.

    Args:
        payload: The ``content`` of an item record.

    Returns:
        The ``output`` text, or None when the payload is incremental text.
    """
    stripped = payload.strip()
    if not (stripped.startswith("{") and stripped.endswith("}")):
        return None
    try:
        data = json.loads(stripped)
    except json.JSONDecodeError:
        logger.debug("Object-like payload is not valid JSON, appending: %r", payload[:200])
        return None
    if not isinstance(data, dict):
        return None
    output = data.get("output")
    if output is None or output == "":
        return None
    return output if isinstance(output, str) else str(output)


class MessageReducer:
    """Fold item payloads into a single assistant message.

    The message is created lazily on the first payload. Each payload then
    either replaces the whole text (a JSON object with ``output``) or is
    appended verbatim, strictly in arrival order: a replacement discards the
    text before it, and text appended after a replacement extends it.

    Attributes:
        state: Current reducer state.
        message: The message being built, None until the first payload.

    Example:
        ```python
        reducer = MessageReducer()
        reducer.apply("partial ")            # [Created(id), Updated(id, 'partial ')]
        reducer.apply('{"output": "done"}')  # [Updated(id, 'done')]
        reducer.apply(" more")               # [Updated(id, 'done more')]
        reducer.finish()                     # [Finalized(id)]
        ```
    """

    __slots__ = ("state", "message", "_message_id")

    def __init__(self, *, message_id: str | None = None) -> None:
        self.state = ReducerState.UNINITIALIZED
        self.message: AssembledMessage | None = None
        self._message_id = message_id

    def apply(self, payload: str) -> list[MessageUpdate]:
        """Apply one payload and return the resulting updates.

        Raises:
            StreamClosedError: If ``finish`` was already called.
        """
        if self.state is ReducerState.TERMINAL:
            raise StreamClosedError("Cannot apply payload to a finished reply")

        updates: list[MessageUpdate] = []
        if self.message is None:
            self.message = AssembledMessage(id=self._message_id)
            self.state = ReducerState.ACCUMULATING
            logger.debug("Created assistant message %s", self.message.id)
            updates.append(Created(id=self.message.id))

        output = final_output(payload)
        if output is not None:
            logger.debug("Replacing text of %s with final output (%s chars)",
                         self.message.id, len(output))
            text = self.message.replace(output)
        else:
            text = self.message.append(payload)
        updates.append(Updated(id=self.message.id, text=text))
        return updates

    def finish(self) -> list[Finalized]:
        """Mark the reply as ended; returns ``Finalized`` if a message exists."""
        if self.state is ReducerState.TERMINAL:
            return []
        self.state = ReducerState.TERMINAL
        if self.message is None:
            logger.debug("Reply ended without content")
            return []
        self.message.finalize()
        logger.debug("Finalized assistant message %s (%s chars)",
                     self.message.id, len(self.message.text))
        return [Finalized(id=self.message.id)]
