from __future__ import annotations

import typing as t


class Created(t.NamedTuple):
    """The assistant message has been created with empty text.

    Emitted exactly once per stream, right before the first ``Updated``.
    Callers use it to add the reply bubble and to clear any "awaiting
    response" indicator.

    Attributes:
        id: Identifier of the new assistant message.
    """

    id: str


class Updated(t.NamedTuple):
    """The assistant message text changed.

    Attributes:
        id: Identifier of the assistant message.
        text: Full current text (not a delta).
    """

    id: str
    text: str


class Finalized(t.NamedTuple):
    """The stream ended; the assistant message will not change anymore.

    Attributes:
        id: Identifier of the assistant message.
    """

    id: str


MessageUpdate: t.TypeAlias = Created | Updated | Finalized
"""Any update emitted while a reply is assembled."""
