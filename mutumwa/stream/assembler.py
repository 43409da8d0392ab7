from __future__ import annotations

import codecs
import logging
import typing as t

import httpx

from mutumwa.exceptions import TransportError
from mutumwa.stream.classify import classify_line
from mutumwa.stream.framing import LineFramer
from mutumwa.stream.reducer import MessageReducer
from mutumwa.types.message import AssembledMessage
from mutumwa.types.stream import AsyncStream
from mutumwa.types.update import MessageUpdate
from mutumwa.utils import release

logger = logging.getLogger("mutumwa.stream.assembler")

UpdateCallback: t.TypeAlias = t.Callable[[MessageUpdate], t.Awaitable[None] | None]

TRANSPORT_ERRORS = (httpx.TransportError, httpx.StreamError, OSError)


class StreamingReplyAssembler:
    """Reassemble a webhook reply stream into assistant message updates.

    The reply is a UTF-8 byte stream of newline-separated JSON records. Each
    chunk is decoded incrementally (a chunk may end in the middle of a
    multi-byte character), split into lines, classified, and the item
    payloads are folded into one assistant message.

    The assembler holds no per-stream state: every ``assemble`` call builds
    its own decoder, line buffer and reducer, so one instance can serve many
    independent streams at once.

    Attributes:
        encoding: Text encoding of the stream.
        errors: Decoder error handler for invalid byte sequences.

    Example:
        ```python
        assembler = StreamingReplyAssembler()

        async with http.stream("POST", url, data=form) as response:
            updates = assembler.assemble(response.aiter_bytes())
            async for update in updates:
                match update:
                    case Created(id=message_id):
                        spinner.stop()
                    case Updated(text=text):
                        render(text)
                    case Finalized():
                        pass
        ```

    Note:
        - Malformed lines and payloads never raise; they are skipped or
          appended as plain text.
        - Transport failures are raised as ``TransportError``; nothing is
          retried.
        - The source is closed on every exit path, including when the
          consumer stops iterating early.
    """

    def __init__(self, *, encoding: str = "utf-8", errors: str = "replace") -> None:
        codecs.lookup(encoding)
        self.encoding = encoding
        self.errors = errors

    def assemble(
        self,
        source: t.AsyncIterable[bytes],
        *,
        message_id: str | None = None,
    ) -> AsyncStream[MessageUpdate]:
        """Turn a byte stream into a stream of message updates.

        Args:
            source: Pull-based byte stream, e.g. ``response.aiter_bytes()``.
                It is read one chunk at a time, never ahead of the consumer.
            message_id: Identifier for the assistant message. A UUID4 string
                is generated when omitted.

        Returns:
            Single-pass stream yielding ``Created``, ``Updated`` and
            ``Finalized`` updates in order.
        """
        return AsyncStream(self._assemble(source, MessageReducer(message_id=message_id)),
                           resource=source)

    async def run(
        self,
        source: t.AsyncIterable[bytes],
        on_update: UpdateCallback,
        *,
        message_id: str | None = None,
    ) -> AssembledMessage | None:
        """Consume a byte stream, calling ``on_update`` for every update.

        The callback (sync or async) completes before the next chunk is read.

        Returns:
            The final assistant message, or None if the stream carried no
            content.

        Raises:
            TransportError: If reading the source fails.
        """
        reducer = MessageReducer(message_id=message_id)
        await AsyncStream(self._assemble(source, reducer), resource=source).foreach(on_update)
        return reducer.message

    async def _assemble(
        self,
        source: t.AsyncIterable[bytes],
        reducer: MessageReducer,
    ) -> t.AsyncGenerator[MessageUpdate, None]:
        decoder = codecs.getincrementaldecoder(self.encoding)(errors=self.errors)
        framer = LineFramer()
        iterator = aiter(source)
        chunk_count = 0

        try:
            while True:
                try:
                    chunk = await anext(iterator)
                except StopAsyncIteration:
                    break
                except TRANSPORT_ERRORS as e:
                    logger.warning("Reply stream failed after %s chunks: %s", chunk_count, e)
                    raise TransportError(f"Reply stream failed: {e}") from e

                chunk_count += 1
                lines = framer.feed(decoder.decode(chunk))
                logger.debug("Chunk %s: %s bytes, %s complete lines", chunk_count, len(chunk),
                             len(lines))
                for line in lines:
                    for update in self._reduce_line(line, reducer):
                        yield update

            lines = framer.feed(decoder.decode(b"", final=True))
            tail = framer.flush()
            if tail is not None:
                lines.append(tail)
            for line in lines:
                for update in self._reduce_line(line, reducer):
                    yield update

            for update in reducer.finish():
                yield update
            logger.debug("Reply stream finished after %s chunks", chunk_count)
        finally:
            await release(iterator)
            if iterator is not source:
                await release(source)

    @staticmethod
    def _reduce_line(line: str, reducer: MessageReducer) -> list[MessageUpdate]:
        item = classify_line(line)
        if item is None:
            return []
        return reducer.apply(item.content)
