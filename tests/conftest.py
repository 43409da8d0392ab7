from __future__ import annotations

import json
import typing as t

import pytest


class ByteSource:
    """Pull-based byte stream that records how it was consumed."""

    def __init__(self, chunks: t.Iterable[bytes], error: Exception | None = None):
        self.chunks = list(chunks)
        self.error = error
        self.reads = 0
        self.closed = False

    def __aiter__(self) -> ByteSource:
        return self

    async def __anext__(self) -> bytes:
        if self.closed:
            raise StopAsyncIteration
        if self.reads < len(self.chunks):
            chunk = self.chunks[self.reads]
            self.reads += 1
            return chunk
        if self.error is not None:
            raise self.error
        raise StopAsyncIteration

    async def aclose(self) -> None:
        self.closed = True


def item(content: str) -> str:
    """One wire line carrying ``content``."""
    return json.dumps({"type": "item", "content": content}, ensure_ascii=False) + "\n"


@pytest.fixture
def make_source() -> t.Callable[..., ByteSource]:
    def _make(*chunks: bytes | str, error: Exception | None = None) -> ByteSource:
        return ByteSource((c.encode("utf-8") if isinstance(c, str) else c for c in chunks),
                          error=error)

    return _make


@pytest.fixture
def item_line() -> t.Callable[[str], str]:
    return item
