from __future__ import annotations

import uuid

from mutumwa.exceptions import StreamClosedError


class AssembledMessage:
    """Single assistant turn built from a reply stream.

    Text grows through ``append`` or is swapped wholesale through
    ``replace``; it is never shortened otherwise. Once ``finalize`` is called
    the message rejects further changes.

    Attributes:
        id: Identifier of the message (UUID4 string unless given).
        text: Current text.
        is_final: Whether the stream that produced the message has ended.
    """

    __slots__ = ("id", "text", "is_final")

    def __init__(
        self,
        *,
        id: str | None = None,  # pylint: disable=redefined-builtin
        text: str = "",
    ) -> None:
        self.id = id or str(uuid.uuid4())
        self.text = text
        self.is_final = False

    def append(self, fragment: str) -> str:
        self._ensure_open()
        self.text += fragment
        return self.text

    def replace(self, text: str) -> str:
        self._ensure_open()
        self.text = text
        return self.text

    def finalize(self) -> None:
        self.is_final = True

    def _ensure_open(self) -> None:
        if self.is_final:
            raise StreamClosedError(f"Message {self.id} is final")

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(id={self.id!r}, text={self.text!r}, "
                f"is_final={self.is_final!r})")
