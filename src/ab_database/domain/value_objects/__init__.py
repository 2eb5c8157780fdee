"""Value objects - immutable, identity-less domain primitives."""

from ab_database.domain.value_objects.column_types import (
    ColumnTypeTag,
    SelectColumnType,
    parse_column_types,
)
from ab_database.domain.value_objects.identifiers import (
    FIRST_TRANSACTION_TOKEN,
    ColumnInfo,
    TransactionToken,
)

__all__ = [
    "ColumnInfo",
    "ColumnTypeTag",
    "FIRST_TRANSACTION_TOKEN",
    "SelectColumnType",
    "TransactionToken",
    "parse_column_types",
]
