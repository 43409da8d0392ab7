from __future__ import annotations

NEWLINE = "\n"


class LineFramer:
    """Split decoded text fragments into complete lines.

    A fragment may end in the middle of a line; the unfinished tail is kept
    until a later fragment completes it or the stream ends. Only ``"\\n"``
    delimits lines, so a ``"\\r"`` before it stays part of the line.

    Example:
        ```python
        framer = LineFramer()
        framer.feed('{"type": "it')        # []
        framer.feed('em"}\\n{"type"')       # ['{"type": "item"}']
        framer.flush()                      # '{"type"'
        ```
    """

    __slots__ = ("_buffer",)

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, fragment: str) -> list[str]:
        """Buffer ``fragment`` and return every line it completes, in order."""
        self._buffer += fragment
        lines = []
        start = 0
        while (end := self._buffer.find(NEWLINE, start)) != -1:
            lines.append(self._buffer[start:end])
            start = end + 1
        if start:
            self._buffer = self._buffer[start:]
        return lines

    def flush(self) -> str | None:
        """Return the buffered partial line at end of stream, if any."""
        line, self._buffer = self._buffer, ""
        return line or None

    @property
    def pending(self) -> str:
        """Text buffered but not yet resolved into a line."""
        return self._buffer
