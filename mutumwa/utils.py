from __future__ import annotations

import inspect
import typing as t


async def release(resource: t.Any) -> None:
    """Close ``resource`` if it exposes ``aclose``; otherwise do nothing.

    Works for async generators, httpx responses and any object whose
    ``aclose`` is sync or async.
    """
    aclose = getattr(resource, "aclose", None)
    if aclose is None:
        return
    result = aclose()
    if inspect.isawaitable(result):
        await result


def truncate(text: str, limit: int, /, suffix: str = "...") -> str:
    """Cut ``text`` to ``limit`` characters, adding ``suffix`` if it was cut.

    Args:
        text: The text to shorten.
        limit: Maximum number of characters kept from ``text``.
        suffix: Marker appended when characters were dropped.

    Returns:
        ``text`` unchanged if short enough, else its first ``limit``
        characters followed by ``suffix``.
    """
    if len(text) <= limit:
        return text
    return text[:limit] + suffix
