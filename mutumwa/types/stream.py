from __future__ import annotations

import inspect
import typing as t

from mutumwa.exceptions import StreamClosedError
from mutumwa.helpers.mixin import AsyncContextMixin
from mutumwa.utils import release

_T = t.TypeVar("_T")
_U = t.TypeVar("_U")


class AsyncStream(AsyncContextMixin, t.AsyncIterable[_T], t.Generic[_T]):
    """Single-pass async stream over a live source.

    Wraps an async iterable (typically an async generator reading from an
    HTTP response) and adds a small set of functional operations plus
    explicit release of the source. A reply stream cannot be replayed, so
    the stream may be iterated only once.

    Closing the stream (``aclose()``, ``close()`` or leaving an ``async with``
    block) closes the source too, whether or not it was fully consumed. An
    optional ``resource`` (e.g. the HTTP response feeding the source) is
    released alongside it, even if iteration never started.
    Streams derived with ``map``/``filter``/``tap`` close their parent when
    they are closed.

    Type Parameters:
        _T: The type of items emitted by this stream.

    Example:
        ```python
        updates = await client.stream_reply(request, domain="zesa")

        async with updates:
            async for update in updates:
                if isinstance(update, Updated):
                    print(update.text)


        # Only the text of each update
        texts = updates \\
            .filter(lambda u: isinstance(u, Updated)) \\
            .map(lambda u: u.text)
        last = await texts.reduce(lambda _, text: text, "")
        ```
    """

    def __init__(self, source: t.AsyncIterable[_T], *, resource: t.Any = None):
        self._source = source
        self._resource = resource
        self._iterator: t.AsyncGenerator[_T, None] | None = None
        self._is_consumed = False
        self._is_closed = False
        self._completed = False
        self._error: Exception | None = None
        self._count = 0

    def __aiter__(self) -> t.AsyncIterator[_T]:
        if self._is_consumed:
            raise StreamClosedError("Stream has already been consumed")
        if self._is_closed:
            raise StreamClosedError("Stream is closed")
        self._is_consumed = True
        self._iterator = self._iterate()
        return self._iterator

    async def __anext__(self) -> _T:
        """Get next item (supports direct iterator protocol)."""
        if self._iterator is None:
            return await self.__aiter__().__anext__()
        return await self._iterator.__anext__()

    async def _iterate(self) -> t.AsyncGenerator[_T, None]:
        try:
            async for item in self._source:
                self._count += 1
                yield item
            self._completed = True
        except Exception as e:
            self._error = e
            raise
        finally:
            await self._close_source()

    async def _close_source(self) -> None:
        if self._is_closed:
            return
        self._is_closed = True
        try:
            await release(self._source)
        finally:
            if self._resource is not None:
                await release(self._resource)

    async def aclose(self) -> None:
        """Stop the stream and release its source."""
        if self._iterator is not None:
            await self._iterator.aclose()
        await self._close_source()

    async def close(self) -> None:
        await self.aclose()

    def _derive(self, step: t.Callable[[_T], t.AsyncIterator[_U]]) -> AsyncStream[_U]:
        async def derived_source() -> t.AsyncGenerator[_U, None]:
            try:
                async for item in self:
                    async for out in step(item):
                        yield out
            finally:
                await self.aclose()

        return AsyncStream(derived_source())

    def filter(self, predicate: t.Callable[[_T], bool]) -> AsyncStream[_T]:
        """Filter stream items by predicate.

        Args:
            predicate: Function returning True for items to keep.

        Returns:
            New stream containing only items matching predicate.
        """

        async def step(item: _T) -> t.AsyncIterator[_T]:
            if predicate(item):
                yield item

        return self._derive(step)

    def tap(self, action: t.Callable[[_T], None]) -> AsyncStream[_T]:
        """Perform side effect on each item without transforming."""

        async def step(item: _T) -> t.AsyncIterator[_T]:
            action(item)
            yield item

        return self._derive(step)

    def map(self, mapper: t.Callable[[_T], _U]) -> AsyncStream[_U]:
        """Transform each stream item.

        Args:
            mapper: Function to transform each item.

        Returns:
            New stream with transformed items.
        """

        async def step(item: _T) -> t.AsyncIterator[_U]:
            yield mapper(item)

        return self._derive(step)

    async def foreach(self, action: t.Callable[[_T], t.Awaitable[None] | None], /) -> None:
        """Consume the stream, calling ``action`` on each item.

        ``action`` may be a plain function or a coroutine function; it runs
        to completion before the next item is pulled from the source.
        """
        async with self:
            async for item in self:
                result = action(item)
                if inspect.isawaitable(result):
                    await result

    async def reduce(self, func: t.Callable[[_U, _T], _U], initial: _U) -> _U:
        """Reduce stream to single value.

        Args:
            func: Reducer function (accumulator, item) -> new_accumulator.
            initial: Initial accumulator value.

        Returns:
            Final accumulated value.
        """
        result = initial
        async with self:
            async for item in self:
                result = func(result, item)
        return result

    @property
    def is_completed(self) -> bool:
        """Check if the source has been read to its end."""
        return self._completed

    @property
    def is_closed(self) -> bool:
        """Check if the source has been released."""
        return self._is_closed

    @property
    def error(self) -> Exception | None:
        """Get exception if one occurred during consumption."""
        return self._error

    @property
    def items_count(self) -> int:
        """Get number of items consumed so far."""
        return self._count
