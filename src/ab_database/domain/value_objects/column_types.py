"""Column type tags for caller-driven result decoding.

A select call carries one tag per output column. The tag, not the
storage class SQLite reports, decides how a cell is decoded.
"""

from __future__ import annotations

from enum import Enum
from typing import Union

from ab_database.domain.errors import UnknownColumnTypeError


class SelectColumnType(Enum):
    """Declared type of one select output column.

    Values are the wire indexes used by the action layer.
    """

    BOOL = 0
    """Non-zero 32-bit integer decodes to True."""

    FLOAT = 1
    """64-bit floating point."""

    INT = 2
    """32-bit integer."""

    LONG = 3
    """64-bit integer."""

    JSON = 4
    """UTF-8 text holding a JSON object."""

    STRING = 5
    """UTF-8 text."""

    @classmethod
    def from_index(cls, index: int) -> SelectColumnType:
        """Look up a tag by its wire index.

        Raises:
            UnknownColumnTypeError: If the index is out of range.
        """
        # bool is an int subclass; True must not silently mean FLOAT
        if isinstance(index, bool) or not isinstance(index, int):
            raise UnknownColumnTypeError(index)
        try:
            return cls(index)
        except ValueError:
            raise UnknownColumnTypeError(index) from None

    @classmethod
    def from_name(cls, name: str) -> SelectColumnType:
        """Look up a tag by name, case-insensitively ("Bool", "json", ...).

        Raises:
            UnknownColumnTypeError: If no tag has that name.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise UnknownColumnTypeError(name) from None

    @classmethod
    def parse(cls, tag: ColumnTypeTag) -> SelectColumnType:
        """Accept an enum member, a name or a wire index."""
        if isinstance(tag, cls):
            return tag
        if isinstance(tag, str):
            return cls.from_name(tag)
        return cls.from_index(tag)


ColumnTypeTag = Union[SelectColumnType, str, int]


def parse_column_types(tags: list[ColumnTypeTag]) -> list[SelectColumnType]:
    """Parse a list of caller-supplied tags, failing on the first unknown one."""
    return [SelectColumnType.parse(tag) for tag in tags]
