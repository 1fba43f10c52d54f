"""Result shaping for statement execution.

Rows come from the native engine as plain tuples. The shaper turns them into
either ordered tuples (array shape) or column-keyed dicts (object shape), and
summarizes write statements into a ``RunResult``.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

from mypy_extensions import mypyc_attr

if TYPE_CHECKING:
    from sqlstep.typing import ArrayRow, ObjectRow, Row, SQLValue

__all__ = ("RowShape", "RunResult", "normalize_value", "shape_row", "shape_rows")


class RowShape(str, Enum):
    """Shape of rows returned by read operations."""

    ARRAY = "array"
    OBJECT = "object"

    def __str__(self) -> str:
        return self.value


@mypyc_attr(allow_interpreted_subclasses=False)
@dataclass(frozen=True)
class RunResult:
    """Summary of a completed ``run`` call.

    Attributes:
        last_insert_rowid: Rowid of the most recent successful INSERT on the connection.
        changes: Rows inserted, updated or deleted by this statement.
    """

    last_insert_rowid: int = 0
    changes: int = 0

    def to_dict(self) -> "dict[str, int]":
        return {"last_insert_rowid": self.last_insert_rowid, "changes": self.changes}


def normalize_value(value: Any) -> "SQLValue":
    """Return the value with blob buffers materialized as ``bytes``."""
    if isinstance(value, (memoryview, bytearray)):
        return bytes(value)
    return value  # type: ignore[no-any-return]


def _array_row(row: "Sequence[Any]") -> "ArrayRow":
    return tuple(normalize_value(value) for value in row)


def _object_row(row: "Sequence[Any]", column_names: "Sequence[str]") -> "ObjectRow":
    # Later columns overwrite earlier ones that share a name.
    result: ObjectRow = {}
    for name, value in zip(column_names, row):
        result[name] = normalize_value(value)
    return result


def shape_row(
    row: "Optional[Sequence[Any]]", column_names: "Sequence[str]", shape: RowShape
) -> "Optional[Row]":
    """Shape a single native row.

    Args:
        row: Values in column order, or None when the statement produced no row.
        column_names: Result column names in column order.
        shape: Target row shape.

    Returns:
        The shaped row, or None when ``row`` is None.
    """
    if row is None:
        return None
    if shape is RowShape.OBJECT:
        return _object_row(row, column_names)
    return _array_row(row)


def shape_rows(
    rows: "Iterable[Sequence[Any]]", column_names: "Sequence[str]", shape: RowShape
) -> "Union[list[ArrayRow], list[ObjectRow]]":
    """Shape every native row in order."""
    if shape is RowShape.OBJECT:
        names = tuple(column_names)
        return [_object_row(row, names) for row in rows]
    return [_array_row(row) for row in rows]
