from __future__ import annotations

import os
import typing as t

import pydantic as pyd


class BaseModel(pyd.BaseModel):
    """Base model shared by the configuration schemas.

    Models are validated on assignment, reject unknown fields and are
    immutable once built, so a loaded configuration can be handed to several
    clients without copying.

    Attributes:
        model_config: Configuration dictionary for the model.
    """
    model_config: t.ClassVar[pyd.ConfigDict] = pyd.ConfigDict(
        validate_assignment=True,
        extra="forbid",
        populate_by_name=True,
        frozen=True,
    )


PathLikes: t.TypeAlias = str | os.PathLike[str]
"""Type alias for path-like objects."""

JSONValue: t.TypeAlias = (
    "dict[str, JSONValue] | list[JSONValue] | str | int | float | bool | None"
)
"""Opaque decoded JSON value."""
