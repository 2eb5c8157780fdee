"""Caller-driven decoding of result cells.

Each output column carries a SelectColumnType declared by the caller.
The declared type picks the accessor used on the prepared statement;
the storage class SQLite reports is never consulted, except to detect
NULL, which always decodes to None.

JSON cells are decoded leniently: text that does not parse into a JSON
object is logged and replaced by None instead of failing the query.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from ab_database.domain.errors import UnknownColumnTypeError
from ab_database.domain.value_objects.column_types import SelectColumnType
from ab_database.ports.outbound.connection import PreparedStatement


logger = logging.getLogger(__name__)


def _decode_json(statement: PreparedStatement, index: int) -> dict[str, Any] | None:
    text = statement.column_text(index)
    if text is None:
        logger.warning("Cannot parse row json: column %d has no text", index)
        return None

    try:
        parsed = json.loads(text)
    except ValueError:
        logger.warning("Cannot parse row json: %s", text)
        return None

    if not isinstance(parsed, dict):
        logger.warning("Cannot parse row json (not an object): %s", text)
        return None

    return parsed


def decode_cell(
    statement: PreparedStatement, index: int, column_type: SelectColumnType
) -> Any:
    """Decode one cell of the current row.

    Args:
        statement: Statement positioned on a row.
        index: Zero-based column index.
        column_type: Declared type of the column.

    Returns:
        The decoded value, or None for a NULL cell.

    Raises:
        UnknownColumnTypeError: If column_type is not a SelectColumnType.
    """
    if not isinstance(column_type, SelectColumnType):
        raise UnknownColumnTypeError(column_type)

    if statement.column_is_null(index):
        return None

    if column_type is SelectColumnType.BOOL:
        return statement.column_int(index) != 0
    if column_type is SelectColumnType.FLOAT:
        return statement.column_double(index)
    if column_type is SelectColumnType.INT:
        return statement.column_int(index)
    if column_type is SelectColumnType.LONG:
        return statement.column_int64(index)
    if column_type is SelectColumnType.JSON:
        return _decode_json(statement, index)

    text = statement.column_text(index)
    if text is None:
        logger.warning("Cannot get string from row: column %d", index)
        return ""
    return text


def decode_row(
    statement: PreparedStatement, column_types: Sequence[SelectColumnType]
) -> list[Any]:
    """Decode the first ``len(column_types)`` cells of the current row."""
    return [
        decode_cell(statement, index, column_type)
        for index, column_type in enumerate(column_types)
    ]
