from __future__ import annotations

import types
import typing as t


class AsyncContextMixin:
    """Mixin giving ``init``/``close`` pairs async context manager support.

    Examples:
        ```python
        class Client(AsyncContextMixin):
            async def init(self) -> None:
                self.conn = await connect()

            async def close(self) -> None:
                await self.conn.aclose()


        async with Client() as client:
            ...
        ```
    """

    async def init(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> t.Self:
        await self.init()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        traceback: types.TracebackType | None,
        /,
    ) -> t.Literal[False]:
        await self.close()
        return False
